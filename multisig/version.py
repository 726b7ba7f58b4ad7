"""
multisig.version — what this build is and which on-disk formats it speaks.

The release number comes from the installed distribution's metadata, so the
package and `pyproject.toml` cannot disagree. A source checkout that was never
installed reports ``0+unknown``.

`version_metadata()` adds the facts an operator needs before pointing a binary
at an existing database: the record layout version written by
`multisig.codec`, the address derivation namespace, and the error-number
ranges clients match on.
"""

from __future__ import annotations

from importlib import metadata
from typing import Dict, Union

from . import codec
from .keys import DEFAULT_NAMESPACE

DIST_NAME = "multisig-engine"

ENGINE_ERROR_NUMBERS = (6000, 6012)
STORE_ERROR_NUMBERS = (7000, 7004)


def installed_version(dist: str = DIST_NAME) -> str:
    try:
        return metadata.version(dist)
    except metadata.PackageNotFoundError:
        return "0+unknown"


__version__ = installed_version()


def version_metadata(namespace: bytes = DEFAULT_NAMESPACE) -> Dict[str, Union[str, int]]:
    """Structured build info for logs and `multisig version`."""
    return {
        "version": __version__,
        "distribution": DIST_NAME,
        "record_layout": codec.VERSION,
        "namespace": namespace.decode("utf-8", "replace"),
        "engine_errors": "%d-%d" % ENGINE_ERROR_NUMBERS,
        "store_errors": "%d-%d" % STORE_ERROR_NUMBERS,
    }


__all__ = ["__version__", "DIST_NAME", "installed_version", "version_metadata"]
