"""
Folder hierarchy over the template repository.

Only parent_folder_id is stored. Children, breadcrumbs and the nested view
are derived by scanning the flat node set. Walks up the parent chain are
bounded by the node count so corrupted (cyclic) data still terminates.
"""

from __future__ import annotations

import logging
from datetime import datetime

from checklist_engine.core.errors import CycleDetected, FolderNotEmpty, NotAFolder, NotFound
from checklist_engine.db.repository import Node, NodeFilter, TemplateRepository, sort_key
from checklist_engine.schemas.templates import Folder, FolderView, TreeOut

logger = logging.getLogger(__name__)

# PATCH may set these to null; other attributes ignore None
_CLEARABLE_FOLDER_ATTRS = frozenset({"description"})


class TemplateTree:
    def __init__(self, repository: TemplateRepository) -> None:
        self.repo = repository

    # ---- lookups ----

    def get_node(self, node_id: str) -> Node:
        node = self.repo.get(node_id)
        if node is None:
            raise NotFound("Node not found", node_id=node_id)
        return node

    def get_folder(self, folder_id: str) -> Folder:
        node = self.get_node(folder_id)
        if not isinstance(node, Folder):
            raise NotAFolder("Target is a template, not a folder", node_id=folder_id)
        return node

    def ensure_parent(self, parent_folder_id: str | None) -> None:
        """Parent must be an existing folder, or None for the root."""
        if parent_folder_id is not None:
            self.get_folder(parent_folder_id)

    def _node_count(self) -> int:
        return len(self.repo.list(NodeFilter()))

    # ---- reads ----

    def resolve_path(self, node_id: str) -> list[Folder]:
        """Ancestor folders from the root down to the immediate parent."""
        node = self.get_node(node_id)
        limit = self._node_count()

        path: list[Folder] = []
        parent_id = node.parent_folder_id
        while parent_id is not None:
            if len(path) >= limit or parent_id == node_id:
                raise CycleDetected("Parent chain loops back on itself", node_id=node_id)
            parent = self.repo.get(parent_id)
            if parent is None:
                logger.warning("dangling parent reference", extra={"node_id": node_id})
                break
            if not isinstance(parent, Folder):
                raise NotAFolder("Parent chain contains a template", node_id=parent_id)
            path.append(parent)
            parent_id = parent.parent_folder_id

        path.reverse()
        return path

    def list_children(self, folder_id: str | None, *, search: str | None = None) -> list[Node]:
        """Direct children of a folder (None = root), by (display_order, created_at)."""
        if folder_id is None:
            node_filter = NodeFilter(in_root=True, search=search)
        else:
            self.get_folder(folder_id)
            node_filter = NodeFilter(parent_folder_id=folder_id, search=search)
        return sorted(self.repo.list(node_filter), key=sort_key)

    def descendant_ids(self, folder_id: str) -> set[str]:
        """All nodes below a folder (not including the folder itself)."""
        by_parent: dict[str, list[str]] = {}
        for n in self.repo.list(NodeFilter()):
            if n.parent_folder_id is not None:
                by_parent.setdefault(n.parent_folder_id, []).append(n.id)

        seen: set[str] = set()
        stack = list(by_parent.get(folder_id, []))
        while stack:
            nid = stack.pop()
            if nid in seen or nid == folder_id:
                continue
            seen.add(nid)
            stack.extend(by_parent.get(nid, []))
        return seen

    def build_hierarchy(self) -> TreeOut:
        """Nested folder view with per-folder template counts."""
        nodes = sorted(self.repo.list(NodeFilter()), key=sort_key)
        folders = {n.id: n for n in nodes if isinstance(n, Folder)}

        views: dict[str, FolderView] = {
            f.id: FolderView(
                id=f.id,
                name=f.name,
                icon=f.icon,
                color=f.color,
                display_order=f.display_order,
                template_count=0,
                template_ids=[],
            )
            for f in folders.values()
        }

        roots: list[FolderView] = []
        root_templates: list[str] = []
        for n in nodes:
            parent = views.get(n.parent_folder_id) if n.parent_folder_id else None
            if isinstance(n, Folder):
                if parent is not None and not self._in_loop(n.id, folders):
                    parent.folders.append(views[n.id])
                else:
                    roots.append(views[n.id])
            elif parent is not None:
                parent.template_ids.append(n.id)
                parent.template_count += 1
            else:
                root_templates.append(n.id)

        return TreeOut(folders=roots, root_template_ids=root_templates)

    @staticmethod
    def _in_loop(folder_id: str, folders: dict[str, Folder]) -> bool:
        seen = {folder_id}
        current = folders[folder_id].parent_folder_id
        for _ in range(len(folders) + 1):
            if current is None or current not in folders:
                return False
            if current in seen:
                return True
            seen.add(current)
            current = folders[current].parent_folder_id
        return True

    # ---- mutations ----

    def _assert_no_cycle(self, node_id: str, new_parent_id: str) -> None:
        """Walk up from the proposed parent; meeting node_id means a cycle."""
        limit = self._node_count()
        current: str | None = new_parent_id
        steps = 0
        while current is not None:
            if current == node_id:
                raise CycleDetected(
                    "Cannot move a node into itself or one of its descendants",
                    node_id=node_id,
                    target_folder_id=new_parent_id,
                )
            steps += 1
            if steps > limit:
                raise CycleDetected("Existing parent chain is cyclic", node_id=new_parent_id)
            parent = self.repo.get(current)
            current = parent.parent_folder_id if parent else None

    def move(self, node_id: str, new_parent_folder_id: str | None) -> Node:
        node = self.get_node(node_id)
        if new_parent_folder_id is not None:
            self.get_folder(new_parent_folder_id)
            self._assert_no_cycle(node_id, new_parent_folder_id)

        if node.parent_folder_id == new_parent_folder_id:
            return node

        moved = node.model_copy(
            update={"parent_folder_id": new_parent_folder_id, "updated_at": datetime.utcnow()}
        )
        self.repo.save(moved)
        logger.info(
            "node moved",
            extra={"node_id": node_id},
        )
        return moved

    def next_display_order(self, parent_folder_id: str | None) -> int:
        siblings = self.list_children(parent_folder_id)
        return max((s.display_order for s in siblings), default=-1) + 1

    def create_folder(
        self,
        name: str,
        parent_folder_id: str | None = None,
        icon: str = "folder",
        color: str = "#6B7280",
        *,
        display_order: int | None = None,
        description: str | None = None,
    ) -> Folder:
        self.ensure_parent(parent_folder_id)
        folder = Folder(
            name=name,
            parent_folder_id=parent_folder_id,
            icon=icon,
            color=color,
            description=description,
            display_order=(
                display_order if display_order is not None else self.next_display_order(parent_folder_id)
            ),
        )
        self.repo.save(folder)
        logger.info("folder created", extra={"node_id": folder.id})
        return folder

    def update_folder(self, folder_id: str, **changes) -> Folder:
        folder = self.get_folder(folder_id)
        updates = {k: v for k, v in changes.items() if v is not None or k in _CLEARABLE_FOLDER_ATTRS}
        if not updates or all(getattr(folder, k) == v for k, v in updates.items()):
            return folder
        updates["updated_at"] = datetime.utcnow()
        updated = folder.model_copy(update=updates)
        self.repo.save(updated)
        return updated

    def delete_folder(self, folder_id: str) -> None:
        """Blocked while the folder has children; move them out first."""
        self.get_folder(folder_id)
        children = self.repo.list(NodeFilter(parent_folder_id=folder_id))
        if children:
            raise FolderNotEmpty(
                "Folder is not empty; move or delete its contents first",
                node_id=folder_id,
                child_count=len(children),
            )
        self.repo.delete(folder_id)
        logger.info("folder deleted", extra={"node_id": folder_id})
