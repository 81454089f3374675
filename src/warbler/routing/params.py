"""Path parameter parsing and type conversion.

Built-in converters for route path segments like ``{id:int}``;
``{name...}`` is shorthand for ``{name:path}``.
"""

from warbler.routing.route import PathSegment

# (regex_pattern, python_type) for each supported converter
CONVERTERS: dict[str, tuple[str, type]] = {
    "str": (r"[^/]+", str),
    "int": (r"\d+", int),
    "float": (r"\d+(?:\.\d+)?", float),
    "path": (r".*", str),
}


def parse_segment(part: str) -> PathSegment:
    """Parse one ``/``-separated piece of a route path."""
    if not (part.startswith("{") and part.endswith("}")):
        return PathSegment(value=part)

    inner = part[1:-1]
    if inner.endswith("..."):
        return PathSegment(value=part, is_param=True, param_name=inner[:-3], param_type="path")
    if ":" in inner:
        param_name, param_type = inner.split(":", 1)
    else:
        param_name, param_type = inner, "str"
    if param_type not in CONVERTERS:
        msg = f"Unknown path converter {param_type!r} in {part!r}."
        raise ValueError(msg)
    return PathSegment(value=part, is_param=True, param_name=param_name, param_type=param_type)


def convert_param(value: str, param_type: str) -> str | int | float:
    """Convert a captured path parameter string to the target type.

    Raises ``ValueError`` if the string cannot be converted.
    Raises ``KeyError`` if *param_type* is not a registered converter.
    """
    _, target_type = CONVERTERS[param_type]
    return target_type(value)
