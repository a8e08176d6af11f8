"""CMS admin data layer: document store handlers, function server and client."""

__version__ = "0.1.0"
