from .entity_model import EntityModel, ModelOptions
from .list_params import ListParams

__all__ = ["EntityModel", "ModelOptions", "ListParams"]
