"""FastAPI dependencies"""

from notelab.dependencies.auth import AuthDependencies, get_current_user

__all__ = ["AuthDependencies", "get_current_user"]
