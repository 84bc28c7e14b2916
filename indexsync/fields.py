"""
Field declarations for an indexed type.

A type is described by a tree of Field objects below a single RootField:

    root = RootField(
        "city",
        Field("name", type="keyword"),
        Field("country", Field("name"), Field("code", type="keyword")),
        Field("rating", value=lambda city: city.stars * 2, type="integer"),
        id="slug",
        routing={"required": True, "value": lambda: this.country.code},
    )

The tree serves two purposes:
- Rendering the elastic mapping (schema) of the type, see mappings_hash()
- Composing the document that is sent to elastic for an object, see compose()

Trees are built once when a type is defined and are only read afterwards,
so they can be shared between threads.
"""

import copy
import logging
import re
from typing import Any, Mapping

from indexsync.errors import FieldConfigurationError
from indexsync.extractors import AttributeExtractor, Extractor, IdentityExtractor, extractor
from indexsync.templates import DynamicTemplateRule

OBJECT_TYPES = {"object", "nested"}
DEFAULT_LEAF_TYPE = "text"


class Field:
    def __init__(self, name: str, *children: "Field", value: Any = None, **options: Any):
        if not name or not isinstance(name, str):
            raise FieldConfigurationError(f"Field name should be a non-empty string, not {name!r}")
        self.name = name
        self.value: Extractor = extractor(value) if value is not None else AttributeExtractor(name)
        self.options = options
        names = set()
        for child in children:
            if not isinstance(child, Field):
                raise FieldConfigurationError(f"Children of field {name!r} should be fields, not {child!r}")
            if child.name in names:
                raise FieldConfigurationError(f"Field {name!r} has more than one child named {child.name!r}")
            names.add(child.name)
        self.children: tuple["Field", ...] = tuple(children)

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name!r}>"

    @property
    def object_field(self) -> bool:
        type = self.options.get("type")
        return (bool(self.children) and not type) or type in OBJECT_TYPES

    @property
    def multi_field(self) -> bool:
        """A field with children and an explicit non-object type: the children are alternative indexings"""
        return bool(self.children) and not self.object_field

    def mappings_hash(self) -> dict[str, dict[str, Any]]:
        mapping: dict[str, Any] = copy.deepcopy(self.options)
        if self.children:
            properties: dict[str, Any] = {}
            for child in self.children:
                properties.update(child.mappings_hash())
            mapping["fields" if self.multi_field else "properties"] = properties
        mapping.setdefault("type", "object" if self.children else DEFAULT_LEAF_TYPE)
        return {self.name: mapping}

    def compose(self, obj: Any) -> dict[str, Any]:
        result = self.value(obj)
        if self.children and not self.multi_field and result is not None:
            if isinstance(result, (list, tuple, set, frozenset)):
                result = [self._compose_children(item) for item in result]
            else:
                result = self._compose_children(result)
        return {self.name: result}

    def _compose_children(self, value: Any) -> dict[str, Any]:
        composed: dict[str, Any] = {}
        for child in self.children:
            composed.update(child.compose(value))
        return composed


def _root_extractor(option: str, value: Any) -> Extractor | None:
    if value is None:
        return None
    try:
        return extractor(value)
    except FieldConfigurationError:
        logging.warning(f"Ignoring root option {option}={value!r}: expected a callable or attribute name")
        return None


def _parent_config(value: Any) -> str | dict[str, Any] | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return dict(value)
    logging.warning(f"Ignoring root option parent={value!r}: expected a type name or a mapping")
    return None


def _routing_config(value: Any) -> dict[str, Any] | None:
    """Routing is either absent or a mapping of routing metadata with an optional 'value' extractor"""
    if value is None:
        return None
    if isinstance(value, str):
        return {"value": AttributeExtractor(value)}
    if isinstance(value, Mapping):
        routing = dict(value)
        if "value" in routing:
            routing["value"] = _root_extractor("routing.value", routing["value"])
            if routing["value"] is None:
                del routing["value"]
        return routing
    logging.warning(f"Ignoring root option routing={value!r}: expected an attribute name or a mapping")
    return None


class RootField(Field):
    """
    The root of a type's field tree. Next to the fields, it knows how to get the id,
    parent id and routing value of a document, and it holds the dynamic templates of the type.
    """

    def __init__(
        self,
        name: str,
        *children: Field,
        id: Any = None,
        parent: Any = None,
        parent_id: Any = None,
        routing: Any = None,
        value: Any = None,
        **options: Any,
    ):
        id = id if id is not None else options.pop("_id", None)
        parent = parent if parent is not None else options.pop("_parent", None)
        routing = routing if routing is not None else options.pop("_routing", None)
        options.pop("_id", None)
        options.pop("_parent", None)
        options.pop("_routing", None)
        options.pop("type", None)
        super().__init__(name, *children, value=value if value is not None else IdentityExtractor(), **options)

        self.id = _root_extractor("id", id)
        self.parent = _parent_config(parent)
        self.parent_id = _root_extractor("parent_id", parent_id)
        self.routing = _routing_config(routing)
        self._dynamic_templates: list[DynamicTemplateRule | dict[str, Any]] = []

    @property
    def dynamic_templates(self) -> tuple[DynamicTemplateRule | dict[str, Any], ...]:
        return tuple(self._dynamic_templates)

    def dynamic_template(
        self, matcher: str | re.Pattern | Mapping | None = None, mapping_type: Any = None, **mapping: Any
    ) -> DynamicTemplateRule | dict[str, Any]:
        """
        Declare a dynamic template. Two forms are supported:

            root.dynamic_template("*_id", "string", type="keyword")
            root.dynamic_template(re.compile(r"^geo\\."), type="geo_point")

        create a rule named template_<n> (n counting all templates declared so far). A
        dot in the matcher makes it a path_match rule.

            root.dynamic_template(ids={"match": "*_id", "mapping": {"type": "keyword"}})

        adds the given rule verbatim (a mapping can also be passed as the only positional argument).
        """
        if isinstance(matcher, Mapping):
            template: DynamicTemplateRule | dict[str, Any] = copy.deepcopy(dict(matcher))
        elif matcher is not None:
            template = DynamicTemplateRule.from_matcher(len(self._dynamic_templates), matcher, mapping_type, mapping)
        else:
            template = copy.deepcopy(mapping)
        self._dynamic_templates.append(template)
        return template

    def mappings_hash(self) -> dict[str, dict[str, Any]]:
        mappings = super().mappings_hash()
        body = mappings[self.name]
        body.pop("type", None)

        if self._dynamic_templates:
            rendered = [t.render() if isinstance(t, DynamicTemplateRule) else copy.deepcopy(t) for t in self._dynamic_templates]
            body["dynamic_templates"] = list(body.get("dynamic_templates", [])) + rendered

        if self.parent is not None:
            body["_parent"] = copy.deepcopy(self.parent) if isinstance(self.parent, dict) else {"type": self.parent}
        if self.routing is not None:
            body["_routing"] = {k: v for k, v in self.routing.items() if k != "value"}
        return mappings

    def compose_id(self, obj: Any) -> Any:
        if self.id is not None:
            return self.id(obj)
        return None

    def compose_parent(self, obj: Any) -> Any:
        if self.parent_id is not None:
            return self.parent_id(obj)
        return None

    def compose_routing(self, obj: Any) -> Any:
        if self.routing is None or self.routing.get("value") is None:
            return None
        return self.routing["value"](obj)

    def compose_document(self, obj: Any) -> dict[str, Any]:
        """The document body for this object: the composed fields, or the object's own data if no fields are declared"""
        if self.children:
            return self.compose(obj)[self.name]
        value = self.value(obj)
        if isinstance(value, Mapping):
            return dict(value)
        if hasattr(value, "_asdict"):
            return dict(value._asdict())
        if not hasattr(value, "__dict__"):
            raise FieldConfigurationError(
                f"Cannot compose a {self.name} document from {value!r}: declare the fields of the type"
            )
        return {k: v for k, v in vars(value).items() if not k.startswith("_")}
