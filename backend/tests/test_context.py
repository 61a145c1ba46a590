import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.bizflow.automation.context import RunContext, interpolate, resolve_path


def test_resolve_path_walks_mappings_and_lists():
    data = {"payload": {"items": [{"sku": "A-1"}, {"sku": "B-2"}]}}
    assert resolve_path(data, "payload.items.1.sku") == "B-2"
    assert resolve_path(data, "payload.items.5.sku") is None
    assert resolve_path(data, "payload.missing.deeper") is None


def test_interpolate_replaces_known_placeholders_only():
    context = {"contact": {"first_name": "Ada"}, "business": {"name": "Acme"}}
    rendered = interpolate("Hi {{contact.first_name}} from {{ business.name }} {{unknown.key}}", context)
    assert rendered == "Hi Ada from Acme {{unknown.key}}"
    assert interpolate(None, context) is None
    assert interpolate("", context) == ""


def test_merge_step_keeps_previous_results():
    context = RunContext({"payload": {"email": "a@example.com"}})
    context.merge_step("n1", {"sent": True})
    context.merge_step("n2", {"taskId": "t-1"})

    data = context.as_dict()
    assert data["step_n1"] == {"sent": True}
    assert data["step_n2"] == {"taskId": "t-1"}
    assert data["payload"] == {"email": "a@example.com"}
    assert context.step_result("n1") == {"sent": True}


def test_as_dict_returns_a_copy():
    context = RunContext({"payload": {"tags": ["a"]}})
    snapshot = context.as_dict()
    snapshot["payload"]["tags"].append("b")
    assert context.payload == {"tags": ["a"]}


def test_setdefault_does_not_overwrite():
    context = RunContext({"business": {"id": "biz-1", "name": "Acme"}})
    context.setdefault("business", {"id": "other"})
    assert context.business_id == "biz-1"
    assert context.render("{{business.name}}") == "Acme"
