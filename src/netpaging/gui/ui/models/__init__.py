from .paging_list_model import PagingListModel
from .roles import Roles, role_names

__all__ = ["PagingListModel", "Roles", "role_names"]
