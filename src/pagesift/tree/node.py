"""
Normalized content tree.

Every stage works on clones of this tree; the tree built from the captured
markup is never mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from html import escape
from typing import Callable, Dict, Iterator, List, Optional, Union

VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)


class NodeKind(str, Enum):
    ELEMENT = "element"
    TEXT = "text"


NodePredicate = Callable[["ContentNode"], bool]


@dataclass(eq=False)
class ContentNode:
    """A single element or text node.

    Equality is identity: two structurally equal nodes are still different
    positions in a tree.
    """

    kind: NodeKind
    tag: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: List[ContentNode] = field(default_factory=list, repr=False)
    hidden: bool = False
    shadow_root: Optional[ContentNode] = field(default=None, repr=False)
    parent: Optional[ContentNode] = field(default=None, repr=False)

    # --- construction ---

    @classmethod
    def element(
        cls,
        tag: str,
        attributes: Optional[Dict[str, str]] = None,
        children: Optional[List[Union[ContentNode, str]]] = None,
        *,
        hidden: bool = False,
    ) -> ContentNode:
        node = cls(NodeKind.ELEMENT, tag=tag.lower(), attributes=dict(attributes or {}), hidden=hidden)
        for child in children or []:
            node.append(cls.text_node(child) if isinstance(child, str) else child)
        return node

    @classmethod
    def text_node(cls, text: str) -> ContentNode:
        return cls(NodeKind.TEXT, text=text)

    @classmethod
    def document(cls, children: Optional[List[Union[ContentNode, str]]] = None) -> ContentNode:
        return cls.element("#document", children=children)

    # --- accessors ---

    @property
    def is_element(self) -> bool:
        return self.kind is NodeKind.ELEMENT

    @property
    def is_text(self) -> bool:
        return self.kind is NodeKind.TEXT

    @property
    def is_fragment_root(self) -> bool:
        return self.tag.startswith("#")

    @property
    def classes(self) -> List[str]:
        return self.attributes.get("class", "").split()

    @property
    def id(self) -> str:
        return self.attributes.get("id", "")

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    @property
    def visible(self) -> bool:
        """False when this node or any ancestor is hidden."""
        node: Optional[ContentNode] = self
        while node is not None:
            if node.hidden:
                return False
            node = node.parent
        return True

    @property
    def element_children(self) -> List[ContentNode]:
        return [child for child in self.children if child.is_element]

    def matches(self, predicate: NodePredicate) -> bool:
        return self.is_element and bool(predicate(self))

    # --- traversal ---

    def iter_descendants(self, include_self: bool = False) -> Iterator[ContentNode]:
        """Pre-order, document-order walk. Shadow roots are not entered."""
        if include_self:
            yield self
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def iter_elements(self, include_self: bool = False) -> Iterator[ContentNode]:
        return (node for node in self.iter_descendants(include_self) if node.is_element)

    def ancestors(self) -> Iterator[ContentNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def find_all(self, *tags: str) -> List[ContentNode]:
        wanted = {tag.lower() for tag in tags}
        return [node for node in self.iter_elements() if node.tag in wanted]

    def select(self, predicate: NodePredicate) -> List[ContentNode]:
        return [node for node in self.iter_elements() if predicate(node)]

    def find(self, predicate: NodePredicate) -> Optional[ContentNode]:
        for node in self.iter_elements():
            if predicate(node):
                return node
        return None

    def text_content(self) -> str:
        if self.is_text:
            return self.text
        return "".join(node.text for node in self.iter_descendants() if node.is_text)

    # --- mutation (only ever applied to clones) ---

    def append(self, child: ContentNode) -> ContentNode:
        child.parent = self
        self.children.append(child)
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def unwrap(self) -> List[ContentNode]:
        """Replace this node with its children, returning the lifted children."""
        lifted = list(self.children)
        parent = self.parent
        if parent is None:
            return lifted
        index = parent.children.index(self)
        for child in lifted:
            child.parent = parent
        parent.children[index : index + 1] = lifted
        self.children = []
        self.parent = None
        return lifted

    def clone(self) -> ContentNode:
        """Deep copy, detached from any parent."""
        root = self._shallow_copy()
        stack = [(self, root)]
        while stack:
            source, target = stack.pop()
            for child in source.children:
                copy = child._shallow_copy()
                target.append(copy)
                if child.children:
                    stack.append((child, copy))
        return root

    def _shallow_copy(self) -> ContentNode:
        return ContentNode(
            kind=self.kind,
            tag=self.tag,
            attributes=dict(self.attributes),
            text=self.text,
            hidden=self.hidden,
            shadow_root=self.shadow_root.clone() if self.shadow_root is not None else None,
        )

    # --- serialization ---

    def outer_html(self) -> str:
        parts: List[str] = []
        stack: List[Union[ContentNode, str]] = [self]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                parts.append(item)
                continue
            if item.is_text:
                parts.append(escape(item.text, quote=False))
                continue
            if item.is_fragment_root:
                stack.extend(reversed(item.children))
                continue
            parts.append(item._open_tag())
            if item.tag in VOID_TAGS:
                continue
            stack.append(f"</{item.tag}>")
            stack.extend(reversed(item.children))
        return "".join(parts)

    def inner_html(self) -> str:
        return "".join(child.outer_html() for child in self.children)

    def _open_tag(self) -> str:
        if not self.attributes:
            return f"<{self.tag}>"
        attrs = " ".join(
            name if value == "" else f'{name}="{escape(value, quote=True)}"' for name, value in self.attributes.items()
        )
        return f"<{self.tag} {attrs}>"

    def __str__(self) -> str:
        if self.is_text:
            return self.text
        label = self.tag
        if self.id:
            label += f"#{self.id}"
        if self.classes:
            label += "." + ".".join(self.classes)
        return f"<{label}>"
