"""Services — name normalization, probing, resolution, command building."""
