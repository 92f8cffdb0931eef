"""SQLite store for PathTreeLib.

Keeps the flat collection in a single ``tree_nodes`` table. The materialized
path is stored as a JSON array and queried with SQLite's JSON1 ``json_each``
for "path contains id" lookups. Ids are stored JSON-encoded, so ``1`` and
``"1"`` remain distinct; they must be strings or integers.

SQLite has no per-row array transform, so this store does not advertise
bulk path transforms and ancestry cascades run as one write per descendant.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from ..core.node import TreeNode
from ..core.store import ANY, COUNTER_FIELDS, NodeFilter, TreeStore

logger = logging.getLogger(__name__)

_COLUMNS = "id, parent_id, ancestor_ids, position, children_count, kind, data_json"


class SQLiteTreeStore(TreeStore):
    """TreeStore backed by a SQLite database file (or ``:memory:``)."""

    def __init__(self, db_path: Union[str, Path] = ":memory:", table: str = "tree_nodes"):
        """Open (and if needed create) the node table.

        Args:
            db_path: Database file path, or ``":memory:"``
            table: Table name, for keeping several trees in one database
        """
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = db_path
        self.table = table
        self._conn: Optional[sqlite3.Connection] = None
        self.init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
                self._conn.row_factory = sqlite3.Row
                logger.debug("connected to %s", self.db_path)
            except sqlite3.Error as e:
                logger.error("could not open %s: %s", self.db_path, e)
                raise
        return self._conn

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
            logger.debug("closed %s", self.db_path)

    def init_schema(self) -> None:
        conn = self._get_conn()
        try:
            with conn:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.table} (
                        seq INTEGER PRIMARY KEY AUTOINCREMENT,
                        id TEXT NOT NULL UNIQUE,
                        parent_id TEXT,
                        ancestor_ids TEXT NOT NULL DEFAULT '[]',
                        position INTEGER,
                        children_count INTEGER,
                        kind TEXT,
                        data_json TEXT NOT NULL DEFAULT '{{}}'
                    );
                    """
                )
                conn.execute(
                    f"CREATE INDEX IF NOT EXISTS IDX_{self.table}_parent "
                    f"ON {self.table}(parent_id, position);"
                )
        except sqlite3.Error as e:
            logger.error("schema initialisation failed: %s", e)
            raise

    # Encoding

    @staticmethod
    def _encode_id(node_id: Any) -> str:
        return json.dumps(node_id)

    @staticmethod
    def _row_to_node(row: sqlite3.Row) -> TreeNode:
        return TreeNode(
            id=json.loads(row["id"]),
            parent_id=json.loads(row["parent_id"]) if row["parent_id"] is not None else None,
            ancestor_ids=json.loads(row["ancestor_ids"]),
            position=row["position"],
            children_count=row["children_count"],
            kind=row["kind"],
            data=json.loads(row["data_json"]),
        )

    def _where(self, node_filter: Optional[NodeFilter]) -> Tuple[str, List[Any]]:
        """Compile a NodeFilter into a WHERE clause and its parameters."""
        if node_filter is None:
            return "1", []

        clauses: List[str] = []
        params: List[Any] = []

        if node_filter.ids is not None:
            if not node_filter.ids:
                return "0", []
            clauses.append(f"id IN ({', '.join('?' for _ in node_filter.ids)})")
            params.extend(self._encode_id(i) for i in node_filter.ids)

        if node_filter.exclude_ids:
            clauses.append(f"id NOT IN ({', '.join('?' for _ in node_filter.exclude_ids)})")
            params.extend(self._encode_id(i) for i in node_filter.exclude_ids)

        if node_filter.parent_id is not ANY:
            if node_filter.parent_id is None:
                clauses.append("parent_id IS NULL")
            else:
                clauses.append("parent_id = ?")
                params.append(self._encode_id(node_filter.parent_id))

        if node_filter.ancestor_id is not ANY:
            clauses.append(
                f"EXISTS (SELECT 1 FROM json_each({self.table}.ancestor_ids) AS a WHERE a.value = ?)"
            )
            params.append(node_filter.ancestor_id)

        for attribute, operator in (('position_gt', '>'), ('position_gte', '>='),
                                    ('position_lt', '<'), ('position_lte', '<=')):
            bound = getattr(node_filter, attribute)
            if bound is not None:
                clauses.append(f"position {operator} ?")
                params.append(bound)

        return (" AND ".join(clauses) or "1"), params

    # Single-record operations

    def get(self, node_id: Any) -> Optional[TreeNode]:
        row = self._get_conn().execute(
            f"SELECT {_COLUMNS} FROM {self.table} WHERE id = ?", (self._encode_id(node_id),)
        ).fetchone()
        return self._row_to_node(row) if row is not None else None

    def save(self, node: TreeNode) -> None:
        sql = f"""
            INSERT INTO {self.table} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                parent_id = excluded.parent_id,
                ancestor_ids = excluded.ancestor_ids,
                position = excluded.position,
                children_count = excluded.children_count,
                kind = excluded.kind,
                data_json = excluded.data_json
        """
        params = (
            self._encode_id(node.id),
            self._encode_id(node.parent_id) if node.parent_id is not None else None,
            json.dumps(list(node.ancestor_ids)),
            node.position,
            node.children_count,
            node.kind,
            json.dumps(node.data),
        )
        self._execute_write(sql, params)

    def delete(self, node_id: Any) -> bool:
        return self._execute_write(
            f"DELETE FROM {self.table} WHERE id = ?", (self._encode_id(node_id),)
        ) > 0

    # Queries

    def find(self, node_filter: Optional[NodeFilter] = None,
             ordered: bool = False) -> List[TreeNode]:
        where, params = self._where(node_filter)
        order = "position IS NULL, position, seq" if ordered else "seq"
        rows = self._get_conn().execute(
            f"SELECT {_COLUMNS} FROM {self.table} WHERE {where} ORDER BY {order}", params
        ).fetchall()
        return [self._row_to_node(row) for row in rows]

    def count(self, node_filter: Optional[NodeFilter] = None) -> int:
        where, params = self._where(node_filter)
        row = self._get_conn().execute(
            f"SELECT COUNT(*) FROM {self.table} WHERE {where}", params
        ).fetchone()
        return row[0]

    # Bulk operations

    def increment(self, field_name: str, amount: int, node_filter: NodeFilter) -> int:
        if field_name not in COUNTER_FIELDS:
            raise ValueError(f"Cannot increment field {field_name!r}; choose from {COUNTER_FIELDS}")

        where, params = self._where(node_filter)
        if field_name == 'position':
            sql = (f"UPDATE {self.table} SET position = position + ? "
                   f"WHERE position IS NOT NULL AND {where}")
        else:
            sql = (f"UPDATE {self.table} SET children_count = COALESCE(children_count, 0) + ? "
                   f"WHERE {where}")
        return self._execute_write(sql, [amount] + params)

    def delete_matching(self, node_filter: NodeFilter) -> int:
        where, params = self._where(node_filter)
        return self._execute_write(f"DELETE FROM {self.table} WHERE {where}", params)

    def _execute_write(self, sql: str, params) -> int:
        conn = self._get_conn()
        try:
            with conn:
                cursor = conn.execute(sql, params)
                return cursor.rowcount
        except sqlite3.Error as e:
            logger.error("write failed: %s | SQL: %s", e, sql.strip())
            raise

    def __repr__(self) -> str:
        return f"SQLiteTreeStore({str(self.db_path)!r}, table={self.table!r})"
