"""Data types for form layouts, matching the snapshot JSON schema.

Geometry lives on ``Component`` itself; kind-specific display metadata lives
in one attribute variant per kind (``TextAttributes``, ``PicklistAttributes``,
``CheckboxAttributes``, ``SectionAttributes``) so each kind carries only the
fields relevant to it.

Coordinate space: when ``parent_section_id`` is set, ``x``/``y`` are relative
to the parent section's top-left corner; otherwise they are absolute canvas
coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

from .geometry import Rect

TEXT = "text"
TEXTAREA = "textarea"
PICKLIST = "picklist"
CHECKBOX = "checkbox"
SECTION = "section"

COMPONENT_KINDS = (TEXT, TEXTAREA, PICKLIST, CHECKBOX, SECTION)

DEFAULT_LABELS = {
    TEXT: "Text Field",
    TEXTAREA: "Text Area",
    PICKLIST: "Picklist",
    CHECKBOX: "Checkbox",
    SECTION: "Section",
}

LEAF_DEFAULT_SIZE = (200, 80)
SECTION_DEFAULT_SIZE = (300, 200)
DEFAULT_PICKLIST_OPTIONS = ("Option 1", "Option 2")


@dataclass
class TextAttributes:
    placeholder: str = ""
    default_value: str = ""

    @staticmethod
    def from_dict(d: dict) -> TextAttributes:
        return TextAttributes(
            placeholder=d.get("placeholder", ""),
            default_value=d.get("defaultValue", ""),
        )

    def to_dict(self) -> dict:
        return {
            "placeholder": self.placeholder,
            "defaultValue": self.default_value,
        }


@dataclass
class PicklistAttributes:
    options: list[str] = field(
        default_factory=lambda: list(DEFAULT_PICKLIST_OPTIONS)
    )
    default_value: str = ""

    @staticmethod
    def from_dict(d: dict) -> PicklistAttributes:
        return PicklistAttributes(
            options=list(d.get("options", DEFAULT_PICKLIST_OPTIONS)),
            default_value=d.get("defaultValue", ""),
        )

    def to_dict(self) -> dict:
        return {
            "options": list(self.options),
            "defaultValue": self.default_value,
        }


@dataclass
class CheckboxAttributes:
    checked: bool = False

    @staticmethod
    def from_dict(d: dict) -> CheckboxAttributes:
        return CheckboxAttributes(checked=bool(d.get("checked", False)))

    def to_dict(self) -> dict:
        return {"checked": self.checked}


@dataclass
class SectionAttributes:
    title: str = ""
    description: str = ""

    @staticmethod
    def from_dict(d: dict) -> SectionAttributes:
        return SectionAttributes(
            title=d.get("title", ""),
            description=d.get("description", ""),
        )

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description}


Attributes = (
    TextAttributes
    | PicklistAttributes
    | CheckboxAttributes
    | SectionAttributes
)

_ATTRIBUTE_TYPES: dict[str, type] = {
    TEXT: TextAttributes,
    TEXTAREA: TextAttributes,
    PICKLIST: PicklistAttributes,
    CHECKBOX: CheckboxAttributes,
    SECTION: SectionAttributes,
}


def check_kind(kind: str) -> str:
    if kind not in COMPONENT_KINDS:
        raise ValueError(
            f"Unknown component kind {kind!r} "
            f"(expected one of {', '.join(COMPONENT_KINDS)})"
        )
    return kind


def default_attributes(kind: str) -> Attributes:
    return _ATTRIBUTE_TYPES[check_kind(kind)]()


def attributes_from_dict(kind: str, d: dict | None) -> Attributes:
    return _ATTRIBUTE_TYPES[check_kind(kind)].from_dict(d or {})


def attribute_names(kind: str) -> tuple[str, ...]:
    """Python field names of the attribute variant for kind."""
    return tuple(f.name for f in fields(_ATTRIBUTE_TYPES[check_kind(kind)]))


def default_size(kind: str) -> tuple[int, int]:
    if check_kind(kind) == SECTION:
        return SECTION_DEFAULT_SIZE
    return LEAF_DEFAULT_SIZE


@dataclass
class Component:
    id: int
    kind: str
    x: float
    y: float
    width: float
    height: float
    label: str = ""
    name: str = ""
    attributes: Attributes = field(default_factory=TextAttributes)
    parent_section_id: int | None = None
    children: list[int] | None = None

    @property
    def is_section(self) -> bool:
        return self.kind == SECTION

    @property
    def rect(self) -> Rect:
        """Bounding box in this component's own coordinate space."""
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def display_text(self) -> str:
        return self.name or self.label or DEFAULT_LABELS[self.kind]

    @property
    def options(self) -> list[str]:
        if isinstance(self.attributes, PicklistAttributes):
            return list(self.attributes.options)
        return []

    def add_child(self, child_id: int) -> None:
        if self.children is not None and child_id not in self.children:
            self.children.append(child_id)

    def remove_child(self, child_id: int) -> None:
        if self.children is not None:
            self.children = [c for c in self.children if c != child_id]

    @staticmethod
    def from_dict(d: dict) -> Component:
        kind = check_kind(d["type"])
        children = d.get("children")
        if kind == SECTION:
            children = list(children or [])
        else:
            children = None
        return Component(
            id=int(d["id"]),
            kind=kind,
            x=_number(d, "x"),
            y=_number(d, "y"),
            width=_number(d, "width"),
            height=_number(d, "height"),
            label=d.get("label") or "",
            name=d.get("name") or "",
            attributes=_attributes_with_options(kind, d),
            parent_section_id=d.get("parentSectionId"),
            children=children,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.kind,
            "label": self.label,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "options": self.options,
            "parentSectionId": self.parent_section_id,
            "children": (
                list(self.children) if self.children is not None else None
            ),
            "name": self.name,
            "properties": self.attributes.to_dict(),
        }


def _number(d: dict, key: str) -> float:
    value = d[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(
            f"Component {d.get('id')} field {key!r} must be a number, "
            f"got {value!r}"
        )
    return value


def _attributes_with_options(kind: str, d: dict) -> Attributes:
    """Build attributes from a record, accepting the top-level ``options``
    list for picklists (older snapshots carry no ``properties``)."""
    props = dict(d.get("properties") or {})
    if kind == PICKLIST and "options" not in props and "options" in d:
        props["options"] = d["options"]
    return attributes_from_dict(kind, props)


@dataclass
class EditorSettings:
    grid_size: int = 16
    allow_overlap: bool = True
    search_max_x: float = 800
    max_search_attempts: int = 1000
    min_width: float = 100
    min_height: float = 60

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        self.grid_size = check_grid_size(self.grid_size)
        if self.max_search_attempts <= 0:
            raise ValueError(
                "max_search_attempts must be positive, got "
                f"{self.max_search_attempts}"
            )
        if self.search_max_x <= 0:
            raise ValueError(
                f"search_max_x must be positive, got {self.search_max_x}"
            )
        if self.min_width <= 0 or self.min_height <= 0:
            raise ValueError(
                f"minimum size must be positive, got "
                f"{self.min_width}x{self.min_height}"
            )

    @staticmethod
    def from_dict(d: dict | None) -> EditorSettings:
        if not d:
            return EditorSettings()
        return EditorSettings(
            grid_size=d.get("grid_size", 16),
            allow_overlap=d.get("allow_overlap", True),
            search_max_x=d.get("search_max_x", 800),
            max_search_attempts=d.get("max_search_attempts", 1000),
            min_width=d.get("min_width", 100),
            min_height=d.get("min_height", 60),
        )

    def to_dict(self) -> dict:
        return {
            "grid_size": self.grid_size,
            "allow_overlap": self.allow_overlap,
            "search_max_x": self.search_max_x,
            "max_search_attempts": self.max_search_attempts,
            "min_width": self.min_width,
            "min_height": self.min_height,
        }


def check_grid_size(grid_size: int) -> int:
    """Validate a grid size, accepting integral floats such as 16.0."""
    if isinstance(grid_size, float) and grid_size.is_integer():
        grid_size = int(grid_size)
    if isinstance(grid_size, bool) or not isinstance(grid_size, int):
        raise ValueError(f"grid_size must be an integer, got {grid_size!r}")
    if grid_size <= 0:
        raise ValueError(f"grid_size must be positive, got {grid_size}")
    return grid_size


@dataclass
class LayoutSnapshot:
    components: list[Component] = field(default_factory=list)
    allow_overlap: bool = True
    timestamp: str = ""
    schema_version: int = 1

    @staticmethod
    def from_dict(d: dict) -> LayoutSnapshot:
        return LayoutSnapshot(
            components=[
                Component.from_dict(c) for c in d.get("components", [])
            ],
            allow_overlap=d.get("allowOverlap", True),
            timestamp=d.get("timestamp", ""),
            schema_version=d.get("schemaVersion", 1),
        )

    def to_dict(self) -> dict:
        return {
            "components": [c.to_dict() for c in self.components],
            "allowOverlap": self.allow_overlap,
            "timestamp": self.timestamp,
            "schemaVersion": self.schema_version,
        }
