"""neuralgraph — capability graph maturation and routing engine."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("neuralgraph")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development
