# dentconnect/routers/__init__.py
from . import health
from . import auth
from . import catalog
from . import bookings

__all__ = ["health", "auth", "catalog", "bookings"]
