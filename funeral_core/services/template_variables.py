"""Template variable extraction and catalog for memorial templates.

Extraction is documentation/validation only: nothing here renders templates.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# {{ name }} or {{ decedent.first_name }}; block helpers ({{#if}}, {{/if}}) never match
VARIABLE_PATTERN = re.compile(r"{{\s*([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)\s*}}")

# Helper keywords that look like plain placeholders
RESERVED_WORDS = frozenset({"else", "this"})


@dataclass(frozen=True)
class TemplateVariableDefinition:
    name: str
    description: str
    category: str


def extract_template_variables(content: str) -> list[str]:
    """Sorted, de-duplicated placeholder names in content."""
    if not content:
        return []
    found = {
        match.group(1)
        for match in VARIABLE_PATTERN.finditer(content)
        if match.group(1) not in RESERVED_WORDS
    }
    return sorted(found)


def list_memorial_template_variables() -> list[TemplateVariableDefinition]:
    """Variables the document generator supplies to memorial templates."""
    return [
        # Decedent
        TemplateVariableDefinition("decedent_name", "Full name of the deceased", "Decedent"),
        TemplateVariableDefinition("birth_date", "Date of birth", "Decedent"),
        TemplateVariableDefinition("death_date", "Date of death", "Decedent"),
        TemplateVariableDefinition("photo_url", "Portrait photo", "Decedent"),
        TemplateVariableDefinition("obituary", "Obituary text", "Decedent"),
        # Service
        TemplateVariableDefinition("service_date", "Date of the service", "Service"),
        TemplateVariableDefinition("service_time", "Start time of the service", "Service"),
        TemplateVariableDefinition("service_location", "Venue of the service", "Service"),
        TemplateVariableDefinition("officiant", "Officiant name", "Service"),
        TemplateVariableDefinition("order_of_service", "Program entries", "Service"),
        TemplateVariableDefinition("pallbearers", "Pallbearer names", "Service"),
        # Funeral home
        TemplateVariableDefinition("funeral_home_name", "Funeral home name", "Funeral Home"),
        TemplateVariableDefinition("funeral_home_phone", "Funeral home phone", "Funeral Home"),
    ]


def find_unknown_variables(variables: list[str]) -> list[str]:
    """Variables not in the catalog (dotted paths are checked by their root name)."""
    known = {definition.name for definition in list_memorial_template_variables()}
    return [name for name in variables if name.split(".", 1)[0] not in known]
