"""
Package name normalization.

pip freeze may print ``Foo_Bar`` for a package declared as
``foo-bar``. Both sides are normalized before comparing. The
normalized form is only ever used for matching; pip is always
invoked with the name exactly as declared.
"""

from __future__ import annotations

import re

_NON_NAME_CHARS = re.compile(r"[^a-z0-9.]")

_URL_PREFIXES = ("http:", "https:")
_VCS_SCHEMES = frozenset({"git", "hg", "svn"})


def normalize(name: str) -> str:
    """Lowercase ``name`` and replace anything outside ``[a-z0-9.]`` with ``-``.

    >>> normalize("Foo.Bar_Baz")
    'foo.bar-baz'
    """
    return _NON_NAME_CHARS.sub("-", name.lower())


def is_direct_reference(name: str) -> bool:
    """Whether ``name`` is a URL or VCS spec rather than a distribution name.

    Appending ``==version`` to such a spec breaks it, so callers must
    pass these to pip untouched.
    """
    lowered = name.lower()
    if lowered.startswith(_URL_PREFIXES):
        return True
    return lowered.split("+", 1)[0] in _VCS_SCHEMES
