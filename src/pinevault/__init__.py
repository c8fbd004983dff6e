"""pinevault keeps a Pine Script indicator repository backed up, organized, and committed.

The public entry points live in subpackages:

* :mod:`pinevault.backup` and :mod:`pinevault.rollback` for script backups,
* :mod:`pinevault.organization` for the repository file organizer,
* :mod:`pinevault.enforcement` for the commit enforcement sequence,
* :mod:`pinevault.validation` for the Pine Script linter.
"""

from importlib import metadata

try:
    __version__ = metadata.version("pinevault")
except metadata.PackageNotFoundError:
    # Running from a source checkout that was never installed.
    __version__ = "0.0.0"

__all__ = ["__version__"]
