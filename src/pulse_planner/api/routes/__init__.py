from .health import health_bp
from .plans import plans_bp

__all__ = ["health_bp", "plans_bp"]
