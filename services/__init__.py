"""Election voting services: election API, vote API and vote processor."""

__version__ = '1.0.0'
