"""Tests for the semantic model: symbols, ancestry and controller discovery."""

from linkforge.core.diagnostics import DiagnosticKind
from linkforge.core.semantic import SemanticModel, attribute_name


# =========================================================================
# Sample C# source fixtures
# =========================================================================

BASE_CONTROLLER = '''
using Microsoft.AspNetCore.Mvc;

namespace App.Controllers
{
    public abstract class AppController : Controller
    {
        public IActionResult About() { return View(); }
    }
}
'''

HOME_CONTROLLER = '''
using Microsoft.AspNetCore.Mvc;

namespace App.Controllers
{
    public class HomeController : AppController
    {
        public IActionResult Index() { return View(); }
    }
}
'''

NOT_CONTROLLERS = '''
using Microsoft.AspNetCore.Mvc;

namespace App.Services
{
    public class Mailer { public void Send() { } }

    [NonController]
    public class FakeController : Controller { }

    public static class StaticController { }

    internal class InternalController : Controller { }

    public class GenericController<T> : Controller { }
}
'''

BY_ATTRIBUTE = '''
namespace App.Api
{
    [Controller]
    public class Inventory
    {
        public IActionResult List() { return null; }
    }

    public class Orders : ControllerBase
    {
        public IActionResult Get() { return null; }
    }
}
'''

CYCLE = '''
namespace App.Broken
{
    public class LoopController : OtherLoop { }
    public class OtherLoop : LoopController { }
}
'''

PARTIAL_ONE = '''
namespace App.Controllers
{
    public partial class SplitController : Controller
    {
        public IActionResult First() { return null; }
    }
}
'''

PARTIAL_TWO = '''
namespace App.Controllers
{
    public partial class SplitController
    {
        public IActionResult Second() { return null; }
    }
}
'''

USING_RESOLUTION = '''
using App.Shared;

namespace App.Web.Controllers
{
    public class ShopController : SharedController
    {
        public IActionResult Index() { return null; }
    }
}
'''

SHARED_BASE = '''
namespace App.Shared
{
    public class SharedController : Microsoft.AspNetCore.Mvc.Controller { }
}
'''

SEALED = '''
namespace App.Controllers
{
    public sealed class SealedController : Controller
    {
        public IActionResult Index() { return null; }
    }
}
'''


def _model(**sources):
    return SemanticModel.from_sources({f"{name}.cs": text for name, text in sources.items()})


# =========================================================================
# Attributes
# =========================================================================

class TestAttributeName:
    def test_short_name(self):
        assert attribute_name("[NonAction]") == "NonAction"

    def test_attribute_suffix_trimmed(self):
        assert attribute_name('[ActionNameAttribute("x")]') == "ActionName"

    def test_qualified_name(self):
        assert attribute_name("[Microsoft.AspNetCore.Mvc.NonController]") == "NonController"


# =========================================================================
# Symbols and ancestry
# =========================================================================

class TestSymbols:
    def test_class_symbol(self):
        model = _model(HomeController=HOME_CONTROLLER)
        home = model.get_class("App.Controllers.HomeController")
        assert home is not None
        assert home.name == "HomeController"
        assert model.resolve_namespace(home) == "App.Controllers"
        assert home.is_public
        assert not home.is_partial
        assert [m.name for m in home.methods] == ["Index"]
        assert home.usings == ("Microsoft.AspNetCore.Mvc",)

    def test_resolve_ancestry(self):
        model = _model(AppController=BASE_CONTROLLER, HomeController=HOME_CONTROLLER)
        home = model.get_class("App.Controllers.HomeController")
        chain = model.resolve_ancestry(home)
        assert [c.name for c in chain] == ["HomeController", "AppController"]
        assert model.external_base(home) == "Controller"

    def test_resolve_base_through_using(self):
        model = _model(Shop=USING_RESOLUTION, Shared=SHARED_BASE)
        shop = model.get_class("App.Web.Controllers.ShopController")
        base = model.resolve_base(shop)
        assert base is not None
        assert base.qualified_name == "App.Shared.SharedController"

    def test_partial_declarations_merged(self):
        model = _model(SplitA=PARTIAL_ONE, SplitB=PARTIAL_TWO)
        split = model.get_class("App.Controllers.SplitController")
        assert [m.name for m in split.methods] == ["First", "Second"]
        assert split.extends == "Controller"
        assert split.file_path == "SplitA.cs"
        assert split.declaration_files == ("SplitA.cs", "SplitB.cs")
        assert split.partial_insert_at is None


# =========================================================================
# Controller discovery
# =========================================================================

class TestDiscovery:
    def test_discovers_by_name_and_ancestry(self):
        model = _model(AppController=BASE_CONTROLLER, HomeController=HOME_CONTROLLER)
        names = [h.name for h in model.list_handlers()]
        assert names == ["AppController", "HomeController"]

    def test_excluded_classes(self):
        model = _model(Services=NOT_CONTROLLERS)
        assert model.list_handlers() == []

    def test_discovers_by_attribute_and_controller_base(self):
        model = _model(Api=BY_ATTRIBUTE)
        names = [h.name for h in model.list_handlers()]
        assert names == ["Inventory", "Orders"]

    def test_discovery_order_follows_sorted_paths(self):
        model = SemanticModel.from_sources({
            "b/HomeController.cs": HOME_CONTROLLER,
            "a/AppController.cs": BASE_CONTROLLER,
        })
        assert [h.name for h in model.list_handlers()] == ["AppController", "HomeController"]

    def test_cyclic_inheritance_reported(self):
        model = _model(Cycle=CYCLE)
        handlers, diagnostics = model.discover_handlers()
        assert handlers == []
        assert [d.kind for d in diagnostics] == [DiagnosticKind.DISCOVERY] * 2
        assert [d.subject for d in diagnostics] == ["App.Broken.LoopController", "App.Broken.OtherLoop"]

    def test_syntax_error_reported(self):
        source = (
            "namespace App.Controllers {\n"
            "    public class BrokenController : Controller {\n"
            "        public IActionResult Index() { return null }\n"
            "    }\n"
            "}\n"
        )
        model = _model(Broken=source)
        handlers, diagnostics = model.discover_handlers()
        assert handlers == []
        assert [d.kind for d in diagnostics] == [DiagnosticKind.DISCOVERY]
        assert "syntax errors" in diagnostics[0].message

    def test_sealed_class_reported(self):
        model = _model(Sealed=SEALED, HomeController=HOME_CONTROLLER, AppController=BASE_CONTROLLER)
        handlers, diagnostics = model.discover_handlers()
        assert [h.name for h in handlers] == ["AppController", "HomeController"]
        assert [(d.kind, d.subject) for d in diagnostics] == [
            (DiagnosticKind.DISCOVERY, "App.Controllers.SealedController"),
        ]
        assert "sealed" in diagnostics[0].message

    def test_list_handlers_is_restartable(self):
        model = _model(AppController=BASE_CONTROLLER, HomeController=HOME_CONTROLLER)
        assert model.list_handlers() == model.list_handlers()


class TestFromDirectory:
    def test_relative_posix_paths(self, tmp_path):
        controllers = tmp_path / "Controllers"
        controllers.mkdir()
        (controllers / "HomeController.cs").write_text(HOME_CONTROLLER, encoding="utf-8")
        (controllers / "AppController.cs").write_text(BASE_CONTROLLER, encoding="utf-8")

        model = SemanticModel.from_directory(str(tmp_path))
        assert sorted(model.sources) == ["Controllers/AppController.cs", "Controllers/HomeController.cs"]
        home = model.get_class("App.Controllers.HomeController")
        assert home.file_path == "Controllers/HomeController.cs"
        assert model.sources["Controllers/HomeController.cs"] == HOME_CONTROLLER.encode("utf-8")
