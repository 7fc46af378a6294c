from khata.handlers.basic import basic_router
from khata.handlers.errors import errors_router
from khata.handlers.expenses import expenses_router
from khata.handlers.groups import groups_router

__all__ = ["basic_router", "errors_router", "expenses_router", "groups_router"]
