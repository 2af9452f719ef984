"""Shared constants for linkforge.

Names and fixed text that appear in the generated C# output, kept in one
place so the rewriter, the generator and the assembler agree on them.
"""

import re

# =============================================================================
# Tool identity
# =============================================================================

TOOL_NAME = "LinkForge"
TOOL_VERSION = "1.0"

# =============================================================================
# Controller conventions
# =============================================================================

# Suffix trimmed once from a controller class name to get its route name
HANDLER_SUFFIX = "Controller"

# Base classes that mark a class as a controller
HANDLER_BASE_NAMES = frozenset({"Controller", "ControllerBase"})

# Area segment of a controller namespace: `App.Areas.Finance.Controllers`.
# Unanchored and with unescaped dots, matched with re.search.
AREA_PATTERN = re.compile(r".Areas.(\w+).(?:Controllers|Handlers)")

# Attributes recognised on controllers and actions
NON_CONTROLLER_ATTRIBUTE = "NonController"
CONTROLLER_ATTRIBUTE = "Controller"
NON_ACTION_ATTRIBUTE = "NonAction"
ACTION_NAME_ATTRIBUTE = "ActionName"
REQUIRE_HTTPS_ATTRIBUTE = "RequireHttps"

# =============================================================================
# Generated type and member names
# =============================================================================

COMPANION_PREFIX = "Linked"
ACTION_RESULT_CLASS = "LinkedActionResult"
JSON_RESULT_CLASS = "LinkedJsonResult"
DESCRIPTOR_INTERFACE = "IRouteDescriptor"
DESCRIPTOR_EXTENSIONS_CLASS = "RouteDescriptorExtensions"
DESCRIPTOR_HOOK = "InitResultDescriptor"
DUMMY_CLASS = "Dummy"

ACTION_NAMES_CLASS = "ActionNamesClass"
ACTION_NAMES_ACCESSOR = "ActionNames"
ACTION_NAME_CONSTANTS_CLASS = "ActionNameConstants"
ACTION_PARAMS_CLASS_PREFIX = "ActionParamsClass_"
OVERRIDE_HOOK_SUFFIX = "Override"

# =============================================================================
# Output units
# =============================================================================

AGGREGATE_FILE_NAME = "Links.generated.cs"
GENERATED_FILE_SUFFIX = ".generated.cs"

PRAGMA_CODES = ("1591", "3008", "3009", "0108")

BASE_USINGS = (
    "System.CodeDom.Compiler",
    "System.Diagnostics",
    "System.Threading.Tasks",
    "Microsoft.AspNetCore.Mvc",
    "Microsoft.AspNetCore.Routing",
)

HEADER_TEXT = """// <auto-generated />
// This file was generated by LinkForge.
// Don't change it directly as your change would get overwritten.  Instead, make changes
// to the linkforge.json file (i.e. the settings file), save it and rebuild.

// Make sure the compiler doesn't complain about missing Xml comments and CLS compliance
// 0108: suppress "Foo hides inherited member Foo.Use the new keyword if hiding was intended." when a controller and its abstract parent are both processed"""
