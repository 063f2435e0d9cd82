from .cached_stream import CachedStream, StreamSubscription
from .list_differ import ChangeOp, InsertOp, ListDiffCalculator, MoveOp, RemoveOp, apply_ops
from .pager import Pager
from .presenter import PagingDataPresenter

__all__ = [
    "CachedStream",
    "ChangeOp",
    "InsertOp",
    "ListDiffCalculator",
    "MoveOp",
    "Pager",
    "PagingDataPresenter",
    "RemoveOp",
    "StreamSubscription",
    "apply_ops",
]
