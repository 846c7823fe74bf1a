"""AppImage maker: turns a packaged application directory into a single .AppImage."""

__version__ = "0.1.0"
