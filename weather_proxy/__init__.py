"""Weather Proxy API"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("weather-proxy")
except PackageNotFoundError:
    __version__ = "dev"
