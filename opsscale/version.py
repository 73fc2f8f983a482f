"""
Version information for the Ops Scale API
"""
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import tomllib

DISTRIBUTION_NAME = "opsscale-api"


def get_version() -> str:
    """Read the version from installed metadata, falling back to pyproject.toml

    Returns:
        Version string, or "unknown"
    """
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        pass

    try:
        pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "unknown"


__version__ = get_version()
