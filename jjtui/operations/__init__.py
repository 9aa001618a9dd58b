from typing import Union

from jjtui.operations.base import Operation, RenderPosition
from jjtui.operations.batch import BatchOperation
from jjtui.operations.bookmark_create import BookmarkCreateOperation
from jjtui.operations.bookmark_move import BookmarkMoveOperation

AnyOperation = Union[BatchOperation, BookmarkMoveOperation, BookmarkCreateOperation]

__all__ = [
    "AnyOperation",
    "BatchOperation",
    "BookmarkCreateOperation",
    "BookmarkMoveOperation",
    "Operation",
    "RenderPosition",
]
