from shared.models.base import CamelModel, CamelRequest, CamelResponse
from shared.models.user import CurrentUser

__all__ = ["CamelModel", "CamelRequest", "CamelResponse", "CurrentUser"]
