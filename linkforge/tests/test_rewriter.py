"""Tests for controller rewriting: actions, areas, diagnostics and source edits."""

import pytest
from linkforge.core.diagnostics import DiagnosticKind
from linkforge.core.generator import (
    DescriptorCarrier,
    DescriptorKind,
    HandlerRewriter,
    ResultDescriptor,
    apply_source_edits,
    area_for_namespace,
    route_name_for,
)
from linkforge.core.generator.models import literal_value
from linkforge.core.generator.rewriter import classify_return_type
from linkforge.core.semantic import SemanticModel


# =========================================================================
# Sample C# source fixtures
# =========================================================================

WIDGETS = '''using Microsoft.AspNetCore.Mvc;

namespace App.Controllers
{
    public class WidgetsController : Controller
    {
        public IActionResult Index()
        {
            return View();
        }

        public IActionResult Index(int page, string sort = "name")
        {
            return View();
        }

        [NonAction]
        public IActionResult Helper() { return null; }

        private IActionResult Hidden() { return null; }

        public static IActionResult Shared() { return null; }

        public override void OnActionExecuting(ActionExecutingContext context) { }
    }
}
'''

REPORTS = '''using System.Threading.Tasks;
using Microsoft.AspNetCore.Mvc;

namespace App.Areas.Finance.Controllers
{
    public partial class ReportsController : Controller
    {
        public virtual IActionResult Summary(int year) { return View(); }

        public JsonResult Data() { return Json(null); }

        public async Task<IActionResult> Build(string name) { return View(); }

        public ActionResult<int> Count() { return 1; }
    }
}
'''

EXPORT = '''using Microsoft.AspNetCore.Mvc;

namespace App.Controllers
{
    public class ExportController : Controller
    {
        public unsafe IActionResult Raw(int* buffer, int length) { return null; }

        public IActionResult Csv(string name) { return null; }

        public IActionResult Update(ref int id) { return null; }

        public string Hello() { return "hi"; }

        public sealed override IActionResult Sealed() { return null; }
    }
}
'''

BASE = '''using Microsoft.AspNetCore.Mvc;

namespace App.Controllers
{
    [RequireHttps]
    public abstract class AppController : Controller
    {
        public IActionResult About() { return View(); }

        public virtual IActionResult Contact(string topic) { return View(); }
    }
}
'''

DERIVED = '''using Microsoft.AspNetCore.Mvc;

namespace App.Controllers
{
    public class HomeController : AppController
    {
        public IActionResult Index() { return View(); }

        public override IActionResult About() { return View(); }
    }
}
'''

NAMED = '''using Microsoft.AspNetCore.Mvc;

namespace App.Controllers
{
    public class AccountController : Controller
    {
        [ActionName("log-in")]
        public IActionResult LogIn() { return View(); }

        [RequireHttps]
        public IActionResult Register() { return View(); }
    }
}
'''


SEARCH = '''using Microsoft.AspNetCore.Mvc;

namespace App.Controllers
{
    public class SearchController : Controller
    {
        public IActionResult Go(string action, int Area) { return null; }

        public IActionResult Find(string controllerName) { return null; }
    }
}
'''


def _rewrite(sources, qualified_name):
    model = SemanticModel.from_sources(sources)
    handlers = model.list_handlers()
    rewriter = HandlerRewriter(model, [h.qualified_name for h in handlers])
    return rewriter.rewrite(model.get_class(qualified_name)), model


# =========================================================================
# Naming helpers
# =========================================================================

class TestNaming:
    @pytest.mark.parametrize("namespace,area", [
        ("App.Areas.Finance.Controllers", "Finance"),
        ("App.Areas.Finance.Handlers", "Finance"),
        ("App.Areas.Finance.Controllers.Reports", "Finance"),
        ("App.Controllers", ""),
        ("Areas.Finance.Controllers", ""),
        ("", ""),
    ])
    def test_area_for_namespace(self, namespace, area):
        assert area_for_namespace(namespace) == area

    def test_route_name_trims_suffix_once(self):
        assert route_name_for("HomeController") == "Home"
        assert route_name_for("ControllerController") == "Controller"
        assert route_name_for("Inventory") == "Inventory"
        assert route_name_for("Controller") == "Controller"

    @pytest.mark.parametrize("return_type,expected", [
        ("IActionResult", (DescriptorKind.GENERIC, "IActionResult", False)),
        ("ActionResult", (DescriptorKind.GENERIC, "ActionResult", False)),
        ("ActionResult<Widget>", (DescriptorKind.GENERIC, "ActionResult<Widget>", False)),
        ("JsonResult", (DescriptorKind.DATA, "JsonResult", False)),
        ("Task<IActionResult>", (DescriptorKind.GENERIC, "IActionResult", True)),
        ("System.Threading.Tasks.Task<JsonResult>", (DescriptorKind.DATA, "JsonResult", True)),
        ("Microsoft.AspNetCore.Mvc.IActionResult", (DescriptorKind.GENERIC, "Microsoft.AspNetCore.Mvc.IActionResult", False)),
        ("string", None),
        ("void", None),
        ("Task", None),
        ("ViewResult", None),
        (None, None),
    ])
    def test_classify_return_type(self, return_type, expected):
        assert classify_return_type(return_type) == expected


# =========================================================================
# Action selection
# =========================================================================

class TestRoutedMethods:
    def test_overload_member_names(self):
        widgets, _ = _rewrite({"WidgetsController.cs": WIDGETS}, "App.Controllers.WidgetsController")
        assert [m.member_name for m in widgets.routed_methods] == ["Index", "Index1"]
        assert [m.overload_index for m in widgets.routed_methods] == [0, 1]
        assert [m.route_name for m in widgets.routed_methods] == ["Index", "Index"]
        assert widgets.name == "Widgets"
        assert widgets.area == ""
        assert widgets.diagnostics == ()

    def test_member_names_never_collide(self):
        source = WIDGETS.replace(
            "[NonAction]\n        public IActionResult Helper()",
            "public IActionResult Index1()",
        ).replace("public static IActionResult Shared()", "public IActionResult Index(long id)")
        widgets, _ = _rewrite({"WidgetsController.cs": source}, "App.Controllers.WidgetsController")
        names = [m.member_name for m in widgets.routed_methods]
        assert len(names) == len(set(names)) == 4
        assert names[:2] == ["Index", "Index1"]

    def test_area_and_kinds(self):
        reports, _ = _rewrite({"ReportsController.cs": REPORTS}, "App.Areas.Finance.Controllers.ReportsController")
        assert reports.area == "Finance"
        assert reports.name == "Reports"
        by_name = {m.name: m for m in reports.routed_methods}
        assert by_name["Data"].kind is DescriptorKind.DATA
        assert by_name["Summary"].kind is DescriptorKind.GENERIC
        assert by_name["Build"].is_async
        assert by_name["Build"].result_type == "IActionResult"
        assert by_name["Count"].result_type == "ActionResult<int>"

    def test_unsupported_parameter_single_diagnostic(self):
        export, _ = _rewrite({"ExportController.cs": EXPORT}, "App.Controllers.ExportController")
        assert [m.name for m in export.routed_methods] == ["Csv"]

        params = [d for d in export.diagnostics if d.kind == DiagnosticKind.UNSUPPORTED_PARAMETER]
        assert [d.subject for d in params] == ["ExportController.Raw", "ExportController.Update"]
        assert "buffer" in params[0].message
        assert "length" not in params[0].message
        assert params[0].file_path == "ExportController.cs"

    def test_route_identity_parameter_names(self):
        search, _ = _rewrite({"SearchController.cs": SEARCH}, "App.Controllers.SearchController")
        assert [m.name for m in search.routed_methods] == ["Find"]
        assert [(d.kind, d.subject) for d in search.diagnostics] == [
            (DiagnosticKind.UNSUPPORTED_PARAMETER, "SearchController.Go"),
        ]
        assert "'action' route value" in search.diagnostics[0].message
        assert "'area' route value" in search.diagnostics[0].message

    def test_unsupported_methods(self):
        export, _ = _rewrite({"ExportController.cs": EXPORT}, "App.Controllers.ExportController")
        subjects = [d.subject for d in export.diagnostics if d.kind == DiagnosticKind.UNSUPPORTED_METHOD]
        assert subjects == ["ExportController.Hello"]

    def test_inherited_actions(self):
        sources = {"AppController.cs": BASE, "HomeController.cs": DERIVED}
        home, _ = _rewrite(sources, "App.Controllers.HomeController")
        assert [(m.name, m.declaring_class) for m in home.routed_methods] == [
            ("Index", "App.Controllers.HomeController"),
            ("About", "App.Controllers.HomeController"),
            ("Contact", "App.Controllers.AppController"),
        ]
        assert home.base_handler == "App.Controllers.AppController"
        assert [m.name for m in home.own_methods] == ["Index", "About"]

    def test_inherited_https_protocol(self):
        sources = {"AppController.cs": BASE, "HomeController.cs": DERIVED}
        home, _ = _rewrite(sources, "App.Controllers.HomeController")
        assert home.member("Contact").protocol == "https"

    def test_override_in_intermediate_base_inherited(self):
        leaf = (
            "namespace App.Controllers\n{\n"
            "    public class LandingController : HomeController\n    {\n"
            "        public IActionResult Welcome() { return View(); }\n"
            "    }\n}\n"
        )
        sources = {"AppController.cs": BASE, "HomeController.cs": DERIVED, "LandingController.cs": leaf}
        landing, _ = _rewrite(sources, "App.Controllers.LandingController")
        assert [(m.name, m.declaring_class) for m in landing.routed_methods] == [
            ("Welcome", "App.Controllers.LandingController"),
            ("Index", "App.Controllers.HomeController"),
            ("About", "App.Controllers.HomeController"),
            ("Contact", "App.Controllers.AppController"),
        ]
        assert landing.diagnostics == ()

    def test_action_name_and_require_https(self):
        account, _ = _rewrite({"AccountController.cs": NAMED}, "App.Controllers.AccountController")
        login = account.member("LogIn")
        assert login.route_name == "log-in"
        assert login.protocol is None
        assert account.member("Register").protocol == "https"


# =========================================================================
# Result descriptors
# =========================================================================

class TestDescribe:
    def test_round_trip(self):
        widgets, _ = _rewrite({"WidgetsController.cs": WIDGETS}, "App.Controllers.WidgetsController")
        descriptor = widgets.describe("Index1", 2, sort="price")
        assert descriptor.area == ""
        assert descriptor.handler == "Widgets"
        assert descriptor.method == "Index"
        assert list(descriptor.parameters.items()) == [("page", 2), ("sort", "price")]

    def test_default_expression_used(self):
        widgets, _ = _rewrite({"WidgetsController.cs": WIDGETS}, "App.Controllers.WidgetsController")
        descriptor = widgets.describe("Index1", 3)
        assert list(descriptor.parameters.items()) == [("page", 3), ("sort", "name")]

    def test_literal_defaults(self):
        assert literal_value('"a\\"b"') == 'a"b'
        assert literal_value('@"C:\\temp"') == "C:\\temp"
        assert literal_value("null") is None
        assert literal_value("false") is False
        assert literal_value("-10") == -10
        assert literal_value("0x1F") == 31
        assert literal_value("2.5m") == 2.5
        assert literal_value("SortOrder.Name") == "SortOrder.Name"

    def test_identity_keys_rejected(self):
        descriptor = ResultDescriptor(DescriptorKind.GENERIC, "", "Search", "Go")
        with pytest.raises(ValueError):
            descriptor.add_route_value("Action", "x")
        assert descriptor.route_values == {"area": "", "controller": "Search", "action": "Go"}

    def test_area_and_route_values(self):
        reports, _ = _rewrite({"ReportsController.cs": REPORTS}, "App.Areas.Finance.Controllers.ReportsController")
        descriptor = reports.describe("Summary", 2024)
        assert descriptor.kind is DescriptorKind.GENERIC
        assert descriptor.route_values == {
            "area": "Finance", "controller": "Reports", "action": "Summary", "year": 2024,
        }
        assert reports.describe("Data").kind is DescriptorKind.DATA

    def test_binding_errors(self):
        widgets, _ = _rewrite({"WidgetsController.cs": WIDGETS}, "App.Controllers.WidgetsController")
        with pytest.raises(TypeError):
            widgets.describe("Index1")
        with pytest.raises(TypeError):
            widgets.describe("Index", 1)
        with pytest.raises(TypeError):
            widgets.describe("Index1", 1, color="red")
        with pytest.raises(KeyError):
            widgets.describe("Missing")

    def test_descriptor_carrier(self):
        descriptor = ResultDescriptor(DescriptorKind.DATA, "A", "Home", "Index")
        assert isinstance(descriptor, DescriptorCarrier)
        descriptor.add_route_value("id", 1)
        descriptor.attach_route_identity("", "Other", "List", "https")
        assert (descriptor.area, descriptor.handler, descriptor.method, descriptor.protocol) == (
            "", "Other", "List", "https",
        )
        assert descriptor.parameters == {}

    def test_duplicate_route_value_rejected(self):
        descriptor = ResultDescriptor(DescriptorKind.GENERIC, "", "Home", "Index")
        descriptor.add_route_value("id", 1)
        with pytest.raises(ValueError):
            descriptor.add_route_value("id", 2)

    def test_variants_share_identity(self):
        generic = ResultDescriptor(DescriptorKind.GENERIC, "A", "Home", "Index")
        data = ResultDescriptor(DescriptorKind.DATA, "A", "Home", "Index")
        assert generic.route_values == data.route_values
        assert generic != data


# =========================================================================
# Source edits
# =========================================================================

class TestSourceEdits:
    def test_partial_and_virtual_inserted(self):
        widgets, model = _rewrite({"WidgetsController.cs": WIDGETS}, "App.Controllers.WidgetsController")
        text = apply_source_edits(model.sources["WidgetsController.cs"], widgets.source_edits).decode("utf-8")
        assert "public partial class WidgetsController : Controller" in text
        assert "public virtual IActionResult Index()" in text
        assert "public virtual IActionResult Index(int page" in text
        assert "public IActionResult Helper()" in text
        assert "private IActionResult Hidden()" in text

    def test_existing_modifiers_respected(self):
        reports, model = _rewrite({"ReportsController.cs": REPORTS}, "App.Areas.Finance.Controllers.ReportsController")
        text = apply_source_edits(model.sources["ReportsController.cs"], reports.source_edits).decode("utf-8")
        assert "partial partial" not in text
        assert "virtual virtual" not in text
        assert "public async virtual Task<IActionResult> Build" in text
        assert "public virtual JsonResult Data()" in text

    def test_inherited_actions_not_edited_in_derived(self):
        sources = {"AppController.cs": BASE, "HomeController.cs": DERIVED}
        home, _ = _rewrite(sources, "App.Controllers.HomeController")
        assert {edit.file_path for edit in home.source_edits} == {"HomeController.cs"}
        # partial + Index; About is already an override
        assert len(home.source_edits) == 2

    def test_edits_are_byte_offsets(self):
        source = WIDGETS.replace("namespace App.Controllers", "// Überblick\nnamespace App.Controllers")
        widgets, model = _rewrite({"WidgetsController.cs": source}, "App.Controllers.WidgetsController")
        text = apply_source_edits(model.sources["WidgetsController.cs"], widgets.source_edits).decode("utf-8")
        assert "// Überblick" in text
        assert "public partial class WidgetsController" in text

    def test_other_bytes_untouched(self):
        source = WIDGETS.replace("\n", "\r\n").encode("utf-8")
        source = source.replace(b"namespace", b"// caf\xe9\r\nnamespace", 1)
        widgets, model = _rewrite({"WidgetsController.cs": source}, "App.Controllers.WidgetsController")
        data = apply_source_edits(model.sources["WidgetsController.cs"], widgets.source_edits)
        assert b"public partial class WidgetsController" in data
        assert b"// caf\xe9\r\n" in data
        assert data.count(b"\r\n") == source.count(b"\r\n")
        assert data.replace(b"partial ", b"").replace(b"virtual ", b"") == source

    def test_text_in_text_out(self):
        widgets, _ = _rewrite({"WidgetsController.cs": WIDGETS}, "App.Controllers.WidgetsController")
        text = apply_source_edits(WIDGETS, widgets.source_edits)
        assert isinstance(text, str)
        assert "public partial class WidgetsController" in text
