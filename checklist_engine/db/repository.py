"""
Repository boundary for template nodes.

The engine only needs get / list / save / delete over whole records. Two
adapters ship with it: an in-memory store (tests, scripts) and a SQLAlchemy
store over the template_nodes table. Storage failures surface as
RepositoryError / IOTimeout and are never retried here.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import exc as sa_exc
from sqlalchemy import or_
from sqlalchemy.orm import Session

from checklist_engine.core.errors import IOTimeout, RepositoryError
from checklist_engine.models.template_node import TemplateNodeRecord
from checklist_engine.schemas.templates import Folder, Template, node_adapter

Node = Folder | Template


@dataclass(frozen=True)
class NodeFilter:
    """
    Selection over template nodes. Default matches everything.

    in_root=True selects nodes without a parent; parent_folder_id selects the
    direct children of that folder.
    """

    kind: str | None = None  # "folder" | "template"
    parent_folder_id: str | None = None
    in_root: bool = False
    category: str | None = None
    is_active: bool | None = None
    search: str | None = None

    def matches(self, node: Node) -> bool:
        if self.kind and node.kind != self.kind:
            return False
        if self.in_root and node.parent_folder_id is not None:
            return False
        if self.parent_folder_id is not None and node.parent_folder_id != self.parent_folder_id:
            return False
        if self.category is not None and (not isinstance(node, Template) or node.category != self.category):
            return False
        if self.is_active is not None and (not isinstance(node, Template) or node.is_active != self.is_active):
            return False
        if self.search:
            term = self.search.lower()
            haystack = f"{node.name}\n{node.description or ''}".lower()
            if term not in haystack:
                return False
        return True


def sort_key(node: Node):
    return (node.display_order, node.created_at)


class TemplateRepository(Protocol):
    def get(self, node_id: str) -> Node | None: ...

    def list(self, node_filter: NodeFilter | None = None) -> list[Node]: ...

    def save(self, node: Node) -> Node: ...

    def delete(self, node_id: str) -> None: ...


# =============================================================================
# In-memory
# =============================================================================


class InMemoryTemplateRepository:
    """Flat dict store. Returns copies so callers never alias stored records."""

    def __init__(self, nodes: list[Node] | None = None) -> None:
        self._nodes: dict[str, Node] = {}
        for n in nodes or []:
            self.save(n)

    def get(self, node_id: str) -> Node | None:
        node = self._nodes.get(node_id)
        return node.model_copy(deep=True) if node else None

    def list(self, node_filter: NodeFilter | None = None) -> list[Node]:
        f = node_filter or NodeFilter()
        rows = [n.model_copy(deep=True) for n in self._nodes.values() if f.matches(n)]
        return sorted(rows, key=sort_key)

    def save(self, node: Node) -> Node:
        self._nodes[node.id] = node.model_copy(deep=True)
        return node

    def delete(self, node_id: str) -> None:
        self._nodes.pop(node_id, None)

    def __len__(self) -> int:
        return len(self._nodes)


# =============================================================================
# SQLAlchemy
# =============================================================================


def _to_node(row: TemplateNodeRecord) -> Node:
    data = {
        "id": row.id,
        "kind": row.kind,
        "name": row.name,
        "description": row.description,
        "parent_folder_id": row.parent_folder_id,
        "display_order": row.display_order,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }
    if row.kind == "folder":
        data.update(icon=row.icon or "folder", color=row.color or "#6B7280")
    else:
        data.update(
            category=row.category or "geral",
            is_public=row.is_public,
            is_active=row.is_active,
            version=row.version,
            usage_count=row.usage_count,
            fields=row.fields or [],
            tags=row.tags or [],
        )
    return node_adapter.validate_python(data)


def _apply(row: TemplateNodeRecord, node: Node) -> None:
    row.kind = node.kind
    row.name = node.name
    row.description = node.description
    row.parent_folder_id = node.parent_folder_id
    row.display_order = node.display_order
    row.created_at = node.created_at
    row.updated_at = node.updated_at

    if isinstance(node, Folder):
        row.icon = node.icon
        row.color = node.color
        return

    row.category = node.category
    row.is_public = node.is_public
    row.is_active = node.is_active
    row.version = node.version
    row.usage_count = node.usage_count
    row.fields = [f.model_dump(mode="json") for f in node.fields]
    row.tags = list(node.tags)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except sa_exc.TimeoutError as e:
        raise IOTimeout(f"Repository {operation} timed out", operation=operation) from e
    except sa_exc.SQLAlchemyError as e:
        raise RepositoryError(f"Repository {operation} failed: {e.__class__.__name__}", operation=operation) from e


class SqlAlchemyTemplateRepository:
    """Stores nodes in template_nodes. Flushes; the session owner commits."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, node_id: str) -> Node | None:
        with _storage_errors("get"):
            row = self.db.get(TemplateNodeRecord, node_id)
            return _to_node(row) if row else None

    def list(self, node_filter: NodeFilter | None = None) -> list[Node]:
        f = node_filter or NodeFilter()
        with _storage_errors("list"):
            q = self.db.query(TemplateNodeRecord)
            if f.kind:
                q = q.filter(TemplateNodeRecord.kind == f.kind)
            if f.in_root:
                q = q.filter(TemplateNodeRecord.parent_folder_id.is_(None))
            if f.parent_folder_id is not None:
                q = q.filter(TemplateNodeRecord.parent_folder_id == f.parent_folder_id)
            if f.category is not None:
                q = q.filter(TemplateNodeRecord.kind == "template", TemplateNodeRecord.category == f.category)
            if f.is_active is not None:
                q = q.filter(TemplateNodeRecord.kind == "template", TemplateNodeRecord.is_active == f.is_active)
            if f.search:
                term = f"%{f.search.lower()}%"
                q = q.filter(
                    or_(
                        TemplateNodeRecord.name.ilike(term),
                        TemplateNodeRecord.description.ilike(term),
                    )
                )
            rows = q.order_by(
                TemplateNodeRecord.display_order.asc(),
                TemplateNodeRecord.created_at.asc(),
            ).all()
            return [_to_node(r) for r in rows]

    def save(self, node: Node) -> Node:
        with _storage_errors("save"):
            row = self.db.get(TemplateNodeRecord, node.id)
            if row is None:
                row = TemplateNodeRecord(id=node.id)
                self.db.add(row)
            _apply(row, node)
            self.db.flush()
        return node

    def delete(self, node_id: str) -> None:
        with _storage_errors("delete"):
            row = self.db.get(TemplateNodeRecord, node_id)
            if row is not None:
                self.db.delete(row)
                self.db.flush()


__all__ = [
    "InMemoryTemplateRepository",
    "Node",
    "NodeFilter",
    "SqlAlchemyTemplateRepository",
    "TemplateRepository",
    "sort_key",
]
