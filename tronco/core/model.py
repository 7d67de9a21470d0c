from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Set

DEP_TYPES = ("prod", "dev", "optional", "peer", "peerOptional", "workspace")


@dataclass(eq=False)
class Edge:
    """A declared dependency from `source` to whatever the resolver found."""
    name: str
    spec: str
    type: str
    source: "PackageNode" = field(repr=False)
    to: Optional["PackageNode"] = field(default=None, repr=False)
    valid: bool = True

    # Stand-in node used by the views when nothing was found on disk
    placeholder: Optional["PackageNode"] = field(default=None, repr=False)

    @property
    def missing(self) -> bool:
        return self.to is None

    @property
    def invalid(self) -> bool:
        return self.to is not None and not self.valid

    @property
    def dev(self) -> bool:
        return self.type == "dev"

    @property
    def optional(self) -> bool:
        return self.type in ("optional", "peerOptional")

    @property
    def peer(self) -> bool:
        return self.type in ("peer", "peerOptional")


@dataclass(eq=False)
class PackageNode:
    name: str
    version: str = ""
    path: str = ""
    location: str = ""
    resolved: Optional[str] = None

    # Raw manifest, only a few fields are projected onto the node
    package: Dict[str, Any] = field(default_factory=dict, repr=False)
    dependencies: Dict[str, str] = field(default_factory=dict)
    dep_types: Dict[str, str] = field(default_factory=dict)

    # Physical layout
    parent: Optional["PackageNode"] = field(default=None, repr=False)
    fs_parent: Optional["PackageNode"] = field(default=None, repr=False)
    children: Dict[str, "PackageNode"] = field(default_factory=dict, repr=False)

    # Logical graph
    edges_out: Dict[str, Edge] = field(default_factory=dict, repr=False)
    edges_in: List[Edge] = field(default_factory=list, repr=False)

    is_root: bool = False
    has_manifest: bool = False
    is_link: bool = False
    target: Optional["PackageNode"] = field(default=None, repr=False)

    # Flags
    extraneous: bool = False
    missing: bool = False
    invalid: bool = False
    dev: bool = False
    optional: bool = False
    peer: bool = False

    problems: List[str] = field(default_factory=list)

    @property
    def real(self) -> "PackageNode":
        if self.is_link and self.target is not None:
            return self.target
        return self

    @property
    def pkgid(self) -> str:
        return f"{self.name}@{self.version}"

    @property
    def package_name(self) -> str:
        return self.package.get("name") or self.name

    @property
    def required_dep_type(self) -> Optional[str]:
        if not self.edges_in:
            return None
        return self.edges_in[0].type

    @property
    def flags(self) -> Set[str]:
        names = ("extraneous", "missing", "invalid", "dev", "optional", "peer")
        return {flag for flag in names if getattr(self, flag)}

    @property
    def resolve_parent(self) -> Optional["PackageNode"]:
        return self.parent or self.fs_parent

    def resolve(self, name: str) -> Optional["PackageNode"]:
        """Find `name` the way the runtime resolver would: here, then outward."""
        node = self
        while node is not None:
            found = node.children.get(name)
            if found is not None:
                return found
            node = node.resolve_parent
        return None

    def add_problem(self, message: str) -> None:
        if message not in self.problems:
            self.problems.append(message)


@dataclass(eq=False)
class PackageTree:
    root: PackageNode
    inventory: Dict[str, PackageNode] = field(default_factory=dict, repr=False)
    global_mode: bool = False
    loader: str = ""
    error: Optional[Exception] = None

    # Filled by the problem detector
    problems: List[Any] = field(default_factory=list, repr=False)

    def add(self, node: PackageNode) -> PackageNode:
        self.inventory[node.location] = node
        return node

    def nodes(self) -> List[PackageNode]:
        return list(self.inventory.values())
