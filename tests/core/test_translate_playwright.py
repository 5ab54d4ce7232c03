"""Playwright Translation tests — JS → Java rewrite rules, one call shape at a time.

Tests cover:
    - Every table entry on a representative executed snippet
    - Receiver-aware option classes (Page vs Locator)
    - Statement termination, comment normalization, untouched pass-through
    - Fenced-block extraction from tool result text
"""

import pytest

from testflow_agent.core.translate_playwright import (
    TRANSLATION_TABLE, apply_rule, extract_executed_code, has_js_residue,
    translate_block, translate_line, untranslated_lines,
)


@pytest.mark.parametrize("js,java", [
    ("await page.goto('https://x.com');", 'page.navigate("https://x.com");'),
    ("await page.goto('https://x.com', { waitUntil: 'load' });", 'page.navigate("https://x.com");'),
    (
        "await page.getByRole('button', { name: 'Submit' }).click();",
        'page.getByRole(AriaRole.BUTTON, new Page.GetByRoleOptions().setName("Submit")).click();',
    ),
    (
        "await page.getByRole('link', { name: /sign in/i }).click();",
        'page.getByRole(AriaRole.LINK, new Page.GetByRoleOptions()'
        '.setName(Pattern.compile("sign in", Pattern.CASE_INSENSITIVE))).click();',
    ),
    ("await page.getByRole('checkbox').check();", "page.getByRole(AriaRole.CHECKBOX).check();"),
    (
        "await page.getByPlaceholder('Email').fill('a@b.com');",
        'page.getByPlaceholder("Email").fill("a@b.com");',
    ),
    (
        "await page.getByLabel('Name').pressSequentially('Bob');",
        'page.getByLabel("Name").fill("Bob");',
    ),
    ("await page.getByTestId('save').click();", 'page.getByTestId("save").click();'),
    ("await page.locator('#submit').click();", 'page.locator("#submit").click();'),
    ("await page.keyboard.press('Enter');", 'page.keyboard().press("Enter");'),
    ("await page.keyboard.type('hello');", 'page.keyboard().type("hello");'),
    (
        "await page.waitForLoadState('networkidle');",
        "page.waitForLoadState(LoadState.NETWORKIDLE);",
    ),
    ("await page.waitForURL('**/home');", 'page.waitForURL("**/home");'),
    (
        "await page.getByLabel('Color').selectOption(['red', 'blue']);",
        'page.getByLabel("Color").selectOption(new String[] {"red", "blue"});',
    ),
    ("await page.evaluate('document.title');", 'page.evaluate("document.title");'),
    ("await page.evaluate(() => document.title);", 'page.evaluate("() => document.title");'),
    ("const title = await page.title();", "var title = page.title();"),
])
def test_translate_line(js, java):
    assert translate_line(js) == java


def test_locator_receiver_uses_locator_options():
    line = "await page.locator('form').getByRole('button', { name: 'Go' }).click();"
    assert translate_line(line) == (
        'page.locator("form").getByRole(AriaRole.BUTTON, '
        'new Locator.GetByRoleOptions().setName("Go")).click();'
    )


def test_exact_option():
    assert translate_line("page.getByText('Save', { exact: true })") == (
        'page.getByText("Save", new Page.GetByTextOptions().setExact(true));'
    )
    assert translate_line(
        "await page.getByRole('button', { name: 'OK', exact: true }).click();"
    ) == (
        'page.getByRole(AriaRole.BUTTON, new Page.GetByRoleOptions()'
        '.setName("OK").setExact(true)).click();'
    )


@pytest.mark.parametrize("method,options", [
    ("getByLabel", "GetByLabelOptions"),
    ("getByPlaceholder", "GetByPlaceholderOptions"),
    ("getByAltText", "GetByAltTextOptions"),
    ("getByTitle", "GetByTitleOptions"),
])
def test_exact_option_class_per_locator_method(method, options):
    assert translate_line(f"await page.{method}('X', {{ exact: true }}).click();") == (
        f'page.{method}("X", new Page.{options}().setExact(true)).click();'
    )
    assert translate_line(f"await page.locator('form').{method}('X', {{ exact: true }})") == (
        f'page.locator("form").{method}("X", new Locator.{options}().setExact(true));'
    )


def test_js_escapes_become_java_escapes():
    assert translate_line(r"await page.getByText('It\'s here').click();") == (
        "page.getByText(\"It's here\").click();"
    )
    assert translate_line("await page.getByText('say \"hi\"').click();") == (
        r'page.getByText("say \"hi\"").click();'
    )


def test_long_evaluate_is_previewed():
    body = "x" * 150
    translated = translate_line(f"await page.evaluate('{body}');")
    assert translated == f'page.evaluate("{"x" * 100}...");'


@pytest.mark.parametrize("js,java", [
    (
        "await expect(page.getByText('Welcome')).toBeVisible();",
        'assertThat(page.getByText("Welcome")).isVisible();',
    ),
    (
        "await expect(page).toHaveURL('https://x.com/home');",
        'assertThat(page).hasURL("https://x.com/home");',
    ),
    (
        "await expect(page.getByText('Error')).not.toBeVisible();",
        'assertThat(page.getByText("Error")).not().isVisible();',
    ),
    (
        "await expect(page.locator('h1')).toHaveText('Dashboard');",
        'assertThat(page.locator("h1")).hasText("Dashboard");',
    ),
])
def test_expect_assertions(js, java):
    assert translate_line(js) == java


def test_comment_normalized():
    assert translate_line("//   clicked login") == "// clicked login"


def test_unmatched_line_passes_through_terminated():
    assert translate_line("page.reload()") == "page.reload();"
    assert translate_line("page.reload();") == "page.reload();"
    assert translate_line("if (x) {") == "if (x) {"
    assert translate_line("}") == "}"


def test_blank_line_is_empty():
    assert translate_line("   ") == ""


def test_translate_block_drops_blank_lines():
    js = "await page.goto('https://x.com');\n\n// fill\nawait page.locator('#q').fill('abc');\n"
    assert translate_block(js) == (
        'page.navigate("https://x.com");\n'
        "// fill\n"
        'page.locator("#q").fill("abc");'
    )


def test_apply_rule_in_isolation():
    rules = {r.shape: r for r in TRANSLATION_TABLE}
    assert apply_rule(rules["await"], "await page.reload()") == "page.reload()"
    assert apply_rule(rules["locator"], "page.locator('a')") == 'page.locator("a")'


def test_table_shapes_are_unique():
    shapes = [r.shape for r in TRANSLATION_TABLE]
    assert len(shapes) == len(set(shapes))


# -- Fenced block extraction ---------------------------------------------------

def test_extract_executed_code():
    result = (
        "### Ran Playwright code\n```js\nawait page.goto('https://x.com');\n```\n\n"
        "### Page state\n- Page URL: https://x.com/"
    )
    assert extract_executed_code(result) == "await page.goto('https://x.com');"


def test_extract_accepts_javascript_tag():
    assert extract_executed_code("```javascript\nawait page.reload();\n```") == (
        "await page.reload();"
    )


def test_extract_returns_none_without_block():
    assert extract_executed_code("Clicked the button") is None
    assert extract_executed_code("") is None
    assert extract_executed_code("```python\nprint(1)\n```") is None


# -- Options and page-level selector calls -------------------------------------

@pytest.mark.parametrize("js,java", [
    (
        "await page.getByTestId('row').click({ button: 'right' });",
        'page.getByTestId("row").click(new Locator.ClickOptions()'
        ".setButton(MouseButton.RIGHT));",
    ),
    (
        "await page.locator('li').click({ modifiers: ['Shift', 'ControlOrMeta'] });",
        'page.locator("li").click(new Locator.ClickOptions()'
        ".setModifiers(Arrays.asList(KeyboardModifier.SHIFT, KeyboardModifier.CONTROLORMETA)));",
    ),
    (
        "await page.locator('td').dblclick({ force: true, timeout: 500 });",
        'page.locator("td").dblclick(new Locator.DblclickOptions().setForce(true).setTimeout(500));',
    ),
    (
        "await page.click('#menu', { button: 'middle', clickCount: 2 });",
        'page.click("#menu", new Page.ClickOptions()'
        ".setButton(MouseButton.MIDDLE).setClickCount(2));",
    ),
    ("await page.click('#go');", 'page.click("#go");'),
    ("await page.hover('nav >> text=Docs');", 'page.hover("nav >> text=Docs");'),
    ("await page.fill('#email', 'a@b.c');", 'page.fill("#email", "a@b.c");'),
    ("await page.type('#q', 'shoes');", 'page.fill("#q", "shoes");'),
    ("await page.press('#q', 'Enter');", 'page.press("#q", "Enter");'),
    ("await page.selectOption('#size', 'M');", 'page.selectOption("#size", "M");'),
    (
        "await page.locator('#x').setInputFiles('a.pdf');",
        'page.locator("#x").setInputFiles(Paths.get("a.pdf"));',
    ),
    (
        "await page.getByLabel('Docs').setInputFiles(['a.pdf', 'b.png']);",
        'page.getByLabel("Docs").setInputFiles(new Path[] {Paths.get("a.pdf"), Paths.get("b.png")});',
    ),
])
def test_options_and_page_calls_become_java(js, java):
    assert translate_line(js) == java
    assert not has_js_residue(translate_line(js))


def test_unknown_click_option_left_untouched():
    line = "await page.locator('a').click({ position: { x: 1, y: 2 } });"
    assert translate_line(line) == (
        'page.locator("a").click({ position: { x: 1, y: 2 } });'
    )


@pytest.mark.parametrize("statement", [
    "page.locator(\"a\").click({ button: 'left', steps: 3 });",
    "page.on('dialog', d => d.accept());",
    'page.setExtraHTTPHeaders({ "x": "1" });',
    'page.locator("a").evaluateAll(["a"]);',
])
def test_js_residue_detected(statement):
    assert has_js_residue(statement)


@pytest.mark.parametrize("statement", [
    'page.getByText("it\'s {here}").click();',
    'page.getByLabel("Color").selectOption(new String[] {"red"});',
    "if (x) {",
    "// clicked 'Save'",
    'page.reload(); // it\'s fine',
])
def test_valid_java_has_no_residue(statement):
    assert not has_js_residue(statement)


def test_untranslated_lines_lists_only_leftovers():
    js = (
        "await page.goto('https://x.com');\n"
        "await page.mouse.wheel(0, 100);\n"
        "page.on('dialog', d => d.accept());\n"
    )
    assert untranslated_lines(js) == ["page.on('dialog', d => d.accept());"]
