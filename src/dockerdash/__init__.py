from importlib.metadata import PackageNotFoundError, version as _pkg_version

__all__ = ["__version__"]

try:
    __version__ = _pkg_version("dockerdash")
except PackageNotFoundError:
    # running from a source checkout that was never installed
    __version__ = "0.0.0+dev"
