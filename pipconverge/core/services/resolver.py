"""
Candidate resolution — which version an unpinned install would pick.

Asks pip's own PackageFinder, running inside the target interpreter,
for the best candidate on the configured index (no find-links, no
extra indexes). The helper script prints the chosen artifact's
filename and the version is parsed from it here.

Resolution is advisory. Any failure (non-zero exit, missing pip
internals, unparsable output) degrades to LATEST so that an install
or upgrade is never blocked by it.
"""

from __future__ import annotations

import logging

from packaging.utils import InvalidWheelFilename, parse_wheel_filename
from packaging.version import InvalidVersion, Version

from pipconverge.adapters.base import CommandExecutionError, CommandRunner, RunOptions
from pipconverge.core.config.paths import DEFAULT_PATHS, PathResolver
from pipconverge.core.models.package import LATEST, DesiredPackage
from pipconverge.core.services.naming import is_direct_reference

logger = logging.getLogger(__name__)

# argv[1]: requirement name, argv[2]: index URL
FINDER_SCRIPT = """\
import sys
from pip._internal.index.collector import LinkCollector
from pip._internal.index.package_finder import PackageFinder
from pip._internal.models.search_scope import SearchScope
from pip._internal.models.selection_prefs import SelectionPreferences
from pip._internal.network.session import PipSession

scope = SearchScope.create(find_links=[], index_urls=[sys.argv[2]], no_index=False)
finder = PackageFinder.create(
    link_collector=LinkCollector(session=PipSession(), search_scope=scope),
    selection_prefs=SelectionPreferences(allow_yanked=False),
)
best = finder.find_best_candidate(sys.argv[1]).best_candidate
if best is None:
    sys.exit(1)
sys.stdout.write(best.link.filename)
"""

_SDIST_EXTENSIONS = (".tar.gz", ".tar.bz2", ".tar.xz", ".tgz", ".tbz", ".zip", ".tar")


def resolve_candidate(
    package: DesiredPackage,
    runner: CommandRunner,
    python_path: PathResolver = DEFAULT_PATHS.python,
    options: RunOptions | None = None,
) -> str:
    """Return the candidate version for ``package``, or LATEST."""
    if is_direct_reference(package.name):
        logger.debug("Skipping candidate lookup for direct reference %s", package.name)
        return LATEST

    command = [python_path(package), "-c", FINDER_SCRIPT, package.name, package.index_url]
    try:
        result = runner.run(command, options)
    except CommandExecutionError as e:
        logger.debug("Candidate lookup for %s failed: %s", package.name, e)
        return LATEST

    if not result.ok:
        logger.debug(
            "Candidate lookup for %s exited %d", package.name, result.exit_status
        )
        return LATEST

    candidate = version_from_filename(result.stdout.strip()) or LATEST
    logger.debug("Result of candidate_version for %s is %s", package.package_name, candidate)
    return candidate


def version_from_filename(filename: str) -> str | None:
    """Extract the version token from a distribution filename.

    For sdists it is the text after the last ``-`` once the extension
    is removed (``Foo-1.0.4.tar.gz`` → ``1.0.4``). Wheels carry tags
    after the version, so their name is parsed structurally. Returns
    None when no clean version can be found.
    """
    if not filename:
        return None

    if filename.endswith(".whl"):
        try:
            _, version, _, _ = parse_wheel_filename(filename)
        except InvalidWheelFilename:
            return None
        return str(version)

    stem = filename
    for ext in _SDIST_EXTENSIONS:
        if stem.endswith(ext):
            stem = stem[: -len(ext)]
            break
    else:
        return None

    token = stem.rsplit("-", 1)[-1]
    try:
        Version(token)
    except InvalidVersion:
        return None
    return token
