"""Trees feature: nested-set forest storage.

Example:
    from tree_service.features.trees import TreeService
    from tree_service.infra.database import get_async_session

    async with get_async_session() as session:
        service = TreeService(session)
        root = await service.get_root()
        books = await service.insert({"label": "books"}, root)
        await service.insert({"label": "fiction"}, books, "lastChild")
"""

from tree_service.features.trees.models import TreeNode
from tree_service.features.trees.repository import TreeNodeRepository, get_tree_node_repository
from tree_service.features.trees.schemas import TreeNodeCreate, TreeNodeRead, TreeProblems
from tree_service.features.trees.service import TreeService

__all__ = [
    "TreeNode",
    "TreeNodeCreate",
    "TreeNodeRead",
    "TreeNodeRepository",
    "TreeProblems",
    "TreeService",
    "get_tree_node_repository",
]
