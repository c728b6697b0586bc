from .authorizer import Authorizer

__all__ = ["Authorizer"]
