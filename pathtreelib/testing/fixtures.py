"""Test fixtures for PathTreeLib consumers.

Trees are described as YAML outlines, which keeps test setup readable:

    - root:
      - child:
        - subchild
      - other_child
    - other_root

A plain string is a leaf, a one-key mapping is a node with children, and a
list is a sequence of siblings. Every node is created through the normal
Tree pipeline, with its name used both as its id and as ``data['name']``.
"""

import textwrap
from typing import Any, Dict, List, Optional

import yaml

from ..core.node import TreeNode
from ..tree import NodeRef, Tree


class TreeFixture:
    """Builds trees from YAML outlines and looks nodes up by name.

    Example:
        fixture = TreeFixture(Tree(InMemoryTreeStore()))
        fixture.build('''
            - root:
              - child
        ''')
        assert fixture.node('child').parent_id == 'root'
    """

    def __init__(self, tree: Tree):
        self.tree = tree
        self.nodes: Dict[str, TreeNode] = {}
        self._kinds: Dict[str, str] = {}

    def build(self, outline: str, kinds: Optional[Dict[str, str]] = None) -> Dict[str, TreeNode]:
        """Create every node described by a YAML outline.

        Args:
            outline: YAML text (leading indentation is fine)
            kinds: Optional mapping of node name to node kind

        Returns:
            Mapping of name to the node as it was saved
        """
        self._kinds = kinds or {}
        self._create(yaml.safe_load(textwrap.dedent(outline)), None)
        return self.nodes

    def node(self, name: str) -> TreeNode:
        """Current stored state of a named node."""
        return self.tree.reload(self.nodes[name])

    def names(self, nodes: List[TreeNode]) -> List[Optional[str]]:
        return [n.name for n in nodes]

    def _create(self, outline: Any, parent: Optional[TreeNode]) -> None:
        if outline is None:
            return
        if isinstance(outline, list):
            for entry in outline:
                self._create(entry, parent)
        elif isinstance(outline, dict):
            for name, children in outline.items():
                created = self._create_node(name, parent)
                self._create(children, created)
        else:
            self._create_node(outline, parent)

    def _create_node(self, name: Any, parent: Optional[TreeNode]) -> TreeNode:
        name = str(name)
        created = self.tree.create(name, parent=parent, kind=self._kinds.get(name), name=name)
        self.nodes[name] = created
        return created


def build_tree(tree: Tree, outline: str, kinds: Optional[Dict[str, str]] = None) -> Dict[str, TreeNode]:
    """Create the nodes of a YAML outline in ``tree``; returns name -> node."""
    return TreeFixture(tree).build(outline, kinds)


def format_tree(tree: Tree, node: Optional[NodeRef] = None, depth: int = 0) -> str:
    """Render a tree (or every root) as an indented outline, for debugging."""
    if node is None:
        return "".join(format_tree(tree, root) for root in tree.roots())

    current = tree.reload(node)
    children = tree.children(current)
    line = "  " * depth + ("- " if depth else "") + str(current.name or current.id)
    line += ":\n" if children else "\n"
    return line + "".join(format_tree(tree, child, depth + 1) for child in children)


def assert_tree_consistent(tree: Tree) -> None:
    """Fail with a readable message if any structural invariant is broken."""
    problems = tree.verify()
    assert not problems, "Tree is inconsistent:\n  " + "\n  ".join(problems)
