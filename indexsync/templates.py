"""
Dynamic templates: rules that give fields a mapping based on their name or path,
instead of declaring every field explicitly.

See https://www.elastic.co/guide/en/elasticsearch/reference/current/dynamic-templates.html
"""

import copy
import re
from typing import Any, Literal

from pydantic import BaseModel

MatchKind = Literal["match", "path_match"]


class DynamicTemplateRule(BaseModel):
    name: str
    match_kind: MatchKind
    pattern: str
    regexp: bool = False
    match_mapping_type: str | None = None
    mapping: dict[str, Any]

    model_config = {"frozen": True}

    @classmethod
    def from_matcher(
        cls, count: int, matcher: str | re.Pattern, mapping_type: Any, mapping: dict[str, Any]
    ) -> "DynamicTemplateRule":
        """
        Create a named rule from a matcher.
        :param count: The number of templates already declared, the rule is named template_<count+1>
        :param matcher: A field name pattern (e.g. "*_id") or compiled regular expression.
                        Patterns containing a dot (an escaped dot for regular expressions) match on the full path
        :param mapping_type: Optional detected type (e.g. "string") the rule is restricted to
        """
        regexp = isinstance(matcher, re.Pattern)
        pattern = matcher.pattern if regexp else matcher
        if not isinstance(pattern, str):
            raise TypeError(f"Dynamic template matcher should be a string or compiled regex, not {matcher!r}")
        path = (r"\." if regexp else ".") in pattern
        return cls(
            name=f"template_{count + 1}",
            match_kind="path_match" if path else "match",
            pattern=pattern,
            regexp=regexp,
            match_mapping_type=str(mapping_type) if mapping_type else None,
            mapping=mapping,
        )

    def render(self) -> dict[str, dict[str, Any]]:
        """The rule as it is sent to elastic"""
        body: dict[str, Any] = {"mapping": copy.deepcopy(self.mapping)}
        if self.match_mapping_type:
            body["match_mapping_type"] = self.match_mapping_type
        if self.regexp:
            body["match_pattern"] = "regexp"
        body[self.match_kind] = self.pattern
        return {self.name: body}
