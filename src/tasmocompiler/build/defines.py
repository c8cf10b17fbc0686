"""
Rendering of ``user_config_override.h``.

Tasmota includes ``user_config_override.h`` after its own defaults, so every
symbol is first undefined and then (re)defined::

    #ifdef USE_DISCOVERY
      #undef USE_DISCOVERY
    #endif
    #define USE_DISCOVERY

A symbol set to false only gets the undefine part.
"""

from typing import Any, List, Mapping

from ..config.request import BuildRequest, DefineField, EmitRule, classify_fields

HEADER_GUARD = "_USER_CONFIG_OVERRIDE_H_"
HEADER_WARNING = "#warning **** user_config_override.h: Using Settings from this File ****"


def format_value(value: Any) -> str:
    """Format a configuration value as a preprocessor token."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_define(define: DefineField) -> str:
    """Render one symbol, or an empty string when it is not emitted."""
    if define.rule is EmitRule.SKIP:
        return ""

    name = define.name
    undefine = f"#ifdef {name}\n  #undef {name}\n#endif\n"

    if define.rule is EmitRule.UNDEFINE:
        return f"{undefine}\n"
    if define.rule is EmitRule.DEFINE:
        return f"{undefine}#define {name}\n\n"
    if define.rule is EmitRule.QUOTED:
        return f'{undefine}#define {name}\t"{format_value(define.value)}"\n\n'
    return f"{undefine}#define {name}\t{format_value(define.value)}\n\n"


def render_defines(mapping: Mapping[str, Any]) -> List[str]:
    """
    Render every emitted symbol of a mapping.

    Args:
        mapping: Symbol name to value mapping (features, network, ...)

    Returns:
        One block per emitted symbol, in the mapping's key order
    """
    blocks = []
    for define in classify_fields(mapping):
        block = render_define(define)
        if block:
            blocks.append(block)
    return blocks


def render_override_header(request: BuildRequest) -> str:
    """
    Render the complete user_config_override.h for a request.

    Blocks are concatenated in the order network, features, board, version,
    custom parameters.
    """
    sections = [
        render_defines(request.network),
        render_defines(request.features),
        render_defines(request.board.defines),
        render_defines(request.version),
    ]
    body = "".join("".join(blocks) for blocks in sections)

    return (
        f"#ifndef {HEADER_GUARD}\n"
        f"#define {HEADER_GUARD}\n\n"
        f"{HEADER_WARNING}\n\n"
        f"{body}"
        f"{request.custom_params}\n"
        "#endif\n"
    )
