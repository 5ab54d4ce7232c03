"""Action Code Generation tests — Java from tool name + args only.

Tests cover:
    - One representative call per browser tool
    - Missing required args still produce a line, annotated with a TODO
    - Unknown tools produce "// TODO: Add code for <tool>"
"""

import pytest

from testflow_agent.core.generate_action_code import generate_action_code


def test_navigate():
    assert generate_action_code("browser_navigate", {"url": "https://x.com"}) == (
        'page.navigate("https://x.com");'
    )


def test_navigate_without_url():
    assert generate_action_code("browser_navigate", {}) == (
        'page.navigate("https://example.com"); // TODO: Add URL'
    )


def test_click_and_double_click():
    assert generate_action_code("browser_click", {"testId": "go"}) == (
        'page.getByTestId("go").click();'
    )
    assert generate_action_code("browser_click", {"selector": "#a", "doubleClick": True}) == (
        'page.locator("#a").dblclick();'
    )


def test_fill_form_fields_by_type():
    code = generate_action_code("browser_fill_form", {"fields": [
        {"name": "Email", "type": "textbox", "value": "a@b.c"},
        {"name": "Agree", "type": "checkbox", "value": True},
        {"name": "Country", "type": "combobox", "value": "PT"},
        {"name": "Promo", "type": "checkbox", "value": "false"},
    ]})
    assert code.split("\n") == [
        'page.getByRole(AriaRole.TEXTBOX, new Page.GetByRoleOptions().setName("Email")).fill("a@b.c");',
        'page.getByRole(AriaRole.CHECKBOX, new Page.GetByRoleOptions().setName("Agree")).setChecked(true);',
        'page.getByRole(AriaRole.COMBOBOX, new Page.GetByRoleOptions().setName("Country")).selectOption("PT");',
        'page.getByRole(AriaRole.CHECKBOX, new Page.GetByRoleOptions().setName("Promo")).setChecked(false);',
    ]


def test_fill_form_placeholder_only():
    assert generate_action_code("browser_fill_form", {"placeholder": "Email"}) == (
        'page.getByPlaceholder("Email").fill("");'
    )


def test_fill_form_with_value():
    assert generate_action_code(
        "browser_fill_form", {"label": "Name", "value": "Ana"},
    ) == 'page.getByLabel("Name").fill("Ana");'


def test_type_with_submit():
    code = generate_action_code(
        "browser_type", {"text": "hello", "selector": "#q", "submit": True},
    )
    assert code == 'page.locator("#q").fill("hello");\npage.locator("#q").press("Enter");'


def test_type_slowly():
    assert generate_action_code(
        "browser_type", {"text": "hi", "selector": "#q", "slowly": True},
    ) == 'page.locator("#q").pressSequentially("hi");'


def test_type_without_text():
    assert "TODO" in generate_action_code("browser_type", {"selector": "#q"})


def test_press_key():
    assert generate_action_code("browser_press_key", {"key": "Tab"}) == (
        'page.keyboard().press("Tab");'
    )
    assert generate_action_code("browser_press_key", {}).endswith("// TODO: Specify key to press")


@pytest.mark.parametrize("args,expected", [
    ({"text": "Done"}, 'page.waitForSelector("text=Done");'),
    ({"time": 2}, "page.waitForTimeout(2000);"),
    ({"timeout": 500}, "page.waitForTimeout(500);"),
    ({}, "page.waitForLoadState();"),
])
def test_wait_for(args, expected):
    assert generate_action_code("browser_wait_for", args) == expected


def test_wait_for_text_gone():
    code = generate_action_code("browser_wait_for", {"textGone": "Loading"})
    assert code.startswith('page.waitForSelector("text=Loading"')
    assert "WaitForSelectorState.HIDDEN" in code


def test_evaluate_preview_limits():
    fn = "() => " + "a" * 200
    assert generate_action_code("browser_evaluate", {"function": fn}) == (
        f'page.evaluate("{fn[:100]}...");'
    )
    assert generate_action_code("browser_run_code", {"code": fn}) == (
        f'page.evaluate("{fn[:150]}...");'
    )


def test_evaluate_without_code():
    assert "TODO" in generate_action_code("browser_evaluate", {})


def test_select_option():
    assert generate_action_code(
        "browser_select_option", {"selector": "#s", "values": ["a", "b"]},
    ) == 'page.locator("#s").selectOption(new String[] {"a", "b"});'
    assert generate_action_code(
        "browser_select_option", {"selector": "#s", "values": ["a"]},
    ) == 'page.locator("#s").selectOption("a");'
    assert "TODO" in generate_action_code("browser_select_option", {})


def test_drag_by_refs():
    assert generate_action_code(
        "browser_drag", {"startRef": "e1", "endRef": "e2"},
    ) == (
        'page.locator("aria-ref=e1").dragTo(page.locator("aria-ref=e2")); '
        "// TODO: Replace snapshot ref with a stable locator"
    )


def test_screenshot_and_back():
    assert generate_action_code("browser_take_screenshot", {"fullPage": True}) == (
        'page.screenshot(new Page.ScreenshotOptions()'
        '.setPath(Paths.get("screenshot.png")).setFullPage(true));'
    )
    assert generate_action_code("browser_navigate_back", {}) == "page.goBack();"


def test_snapshot_and_hover():
    assert generate_action_code("browser_snapshot", {}) == "// Take page snapshot"
    assert generate_action_code("browser_hover", {"text": "Menu"}).endswith(".hover();")


def test_unknown_tool():
    assert generate_action_code("browser_tabs", {"action": "list"}) == (
        "// TODO: Add code for browser_tabs"
    )


def test_values_escaped():
    assert generate_action_code("browser_navigate", {"url": 'https://x.com/?q="a"'}) == (
        r'page.navigate("https://x.com/?q=\"a\"");'
    )


def test_none_args_do_not_raise():
    assert generate_action_code("browser_click", None) == (
        'page.locator("button").click(); // TODO: Specify the target element'
    )
