"""Type and member extraction from parsed C# syntax trees."""
from dataclasses import dataclass, field
from typing import Iterator, List, Optional
from tree_sitter import Tree, Node


@dataclass
class TypeDeclaration:
    """Represents one class declared in a script."""
    name: str
    base_types: List[str]  # Inheritance list as written (e.g., ['UnityEngine.MonoBehaviour', 'IFoo'])
    fields: List[str] = field(default_factory=list)  # Every declarator name of every field declaration
    properties: List[str] = field(default_factory=list)

    @property
    def member_names(self) -> List[str]:
        return self.fields + self.properties


def base_type_token(type_text: str) -> str:
    """Reduce an inheritance-list entry to its bare type name.

    'UnityEngine.MonoBehaviour' -> 'MonoBehaviour', 'Singleton<Game>' -> 'Singleton'
    """
    token = type_text.split('<', 1)[0].strip()
    return token.rsplit('.', 1)[-1].strip()


class SymbolExtractor:
    """Extract classes and their field/property declarations from syntax trees."""

    CLASS_NODE_TYPES = ('class_declaration',)
    FIELD_NODE_TYPES = ('field_declaration',)
    PROPERTY_NODE_TYPES = ('property_declaration',)

    def extract_types(self, tree: Tree, source_code: bytes) -> List[TypeDeclaration]:
        """Extract every class declaration, in document order.

        Members are collected from all descendants of the class node, so fields
        of nested classes are attributed to the enclosing class as well.

        Args:
            tree: Parsed tree-sitter Tree
            source_code: Original source code bytes

        Returns:
            List of TypeDeclaration objects
        """
        declarations = []
        for node in self._traverse(tree.root_node):
            if node.type not in self.CLASS_NODE_TYPES:
                continue
            name = self._extract_name(node)
            if not name:
                continue
            declaration = TypeDeclaration(
                name=name,
                base_types=self._extract_base_classes(node, source_code),
            )
            self._collect_members(node, declaration)
            declarations.append(declaration)
        return declarations

    def select_behaviour_type(self, declarations: List[TypeDeclaration],
                              base_types: List[str]) -> Optional[TypeDeclaration]:
        """Pick the class that backs a behaviour component.

        Prefers the first class whose inheritance list names one of base_types
        exactly; falls back to the first declared class.
        """
        allowed = set(base_types)
        for declaration in declarations:
            if any(base_type_token(base) in allowed for base in declaration.base_types):
                return declaration
        return declarations[0] if declarations else None

    def _collect_members(self, class_node: Node, declaration: TypeDeclaration):
        for node in self._traverse(class_node):
            if node.type in self.FIELD_NODE_TYPES:
                declaration.fields.extend(self._extract_field_names(node))
            elif node.type in self.PROPERTY_NODE_TYPES:
                name = self._extract_property_name(node)
                if name:
                    declaration.properties.append(name)

    def _traverse(self, node: Node) -> Iterator[Node]:
        """Iteratively traverse tree using a stack and yield all nodes.

        Args:
            node: Root node to start traversal

        Yields:
            All nodes in tree
        """
        stack = [node]
        while stack:
            current = stack.pop()
            yield current
            # Add children in reverse order to maintain left-to-right traversal
            stack.extend(reversed(current.children))

    def _extract_name(self, node: Node) -> Optional[str]:
        """Extract name from a class declaration node."""
        name_node = node.child_by_field_name('name')
        if name_node is not None:
            return name_node.text.decode('utf-8', errors='ignore')
        for child in node.children:
            if child.type == 'identifier':
                return child.text.decode('utf-8', errors='ignore')
        return None

    def _extract_base_classes(self, node: Node, source_code: bytes) -> List[str]:
        """Extract the inheritance list of a class declaration.

        Parses `class Child : Base1, IFoo` to ['Base1', 'IFoo'].
        """
        base_classes = []
        for child in node.children:
            if child.type != 'base_list':
                continue
            for base in child.named_children:
                text = source_code[base.start_byte:base.end_byte].decode('utf-8', errors='ignore')
                # Primary-constructor bases carry an argument list
                base_classes.append(text.split('(', 1)[0].strip())
        return base_classes

    def _extract_field_names(self, node: Node) -> List[str]:
        """`int a, b;` yields ['a', 'b']."""
        names = []
        for declaration in node.children:
            if declaration.type != 'variable_declaration':
                continue
            for declarator in declaration.children:
                if declarator.type != 'variable_declarator':
                    continue
                name_node = declarator.child_by_field_name('name')
                if name_node is None:
                    name_node = next((c for c in declarator.children if c.type == 'identifier'), None)
                if name_node is not None:
                    names.append(name_node.text.decode('utf-8', errors='ignore'))
        return names

    def _extract_property_name(self, node: Node) -> Optional[str]:
        name_node = node.child_by_field_name('name')
        if name_node is not None:
            return name_node.text.decode('utf-8', errors='ignore')
        # The type may itself be an identifier; the name is the last one before the accessors
        identifiers = [c for c in node.children if c.type == 'identifier']
        if identifiers:
            return identifiers[-1].text.decode('utf-8', errors='ignore')
        return None
