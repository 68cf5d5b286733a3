"""Core — models, services, engine and use cases."""
