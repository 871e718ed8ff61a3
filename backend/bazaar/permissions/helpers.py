# Overview: Utility functions for capability lookups and validation.

from .definitions import CAPABILITY_DEFINITIONS, Capability


def get_all_capability_codes():
    """Get list of all capability codes."""
    return [cap[0].value for cap in CAPABILITY_DEFINITIONS]


def get_capabilities_by_category(category):
    """Get all capabilities in a category."""
    return [cap for cap in CAPABILITY_DEFINITIONS if cap[3] == category]


def get_capability_definition(code):
    """Get full definition for a capability code."""
    for cap in CAPABILITY_DEFINITIONS:
        if cap[0].value == code:
            return {
                "code": cap[0].value,
                "name": cap[1],
                "description": cap[2],
                "category": cap[3],
            }
    return None


def validate_capability_code(code):
    """Check if a capability code is valid."""
    return code in get_all_capability_codes()


def parse_capabilities(codes) -> list[Capability]:
    """
    Convert user supplied codes to Capability members.

    Raises ValueError naming the first unknown code.
    """
    parsed = []
    for code in codes or ():
        try:
            parsed.append(Capability(str(code).upper()))
        except ValueError:
            raise ValueError(f"Unknown capability: {code}") from None
    return parsed
