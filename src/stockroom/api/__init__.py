from stockroom.api.errors import register_error_handlers
from stockroom.api.routes import count_router, stock_router

__all__ = ["stock_router", "count_router", "register_error_handlers"]
