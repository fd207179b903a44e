from dupwatch.names import (
    DENY_LIST,
    collect_occurrences,
    extract_named_occurrences,
    find_duplicate_names,
    group_by_name,
    select_family,
)

from conftest import write_lines


def test_python_declarations_use_keyword_family():
    content = "\n".join([
        "import os",
        "",
        "def render_total(order):",
        "    return order.total",
        "",
        "    def nested_helper(x):",
        "        return x",
    ])
    occurrences = extract_named_occurrences("a.py", content)

    assert [(o.name, o.line_number, o.family) for o in occurrences] == [
        ("render_total", 3, "keyword"),
        ("nested_helper", 6, "keyword"),
    ]
    assert occurrences[0].context_line == "def render_total(order):"


def test_first_matching_family_is_used_exclusively():
    content = "\n".join([
        "int Foo::bar(int x) {",
        "    return x;",
        "}",
        "int baz(int y) {",
        "    return y;",
        "}",
    ])
    occurrences = extract_named_occurrences("foo.cpp", content)

    assert [o.name for o in occurrences] == ["bar"]
    assert occurrences[0].family == "qualified_method"
    assert occurrences[0].line_number == 1


def test_denied_names_are_ignored():
    content = "\n".join([
        "def get(self):",
        "    return self.value",
        "def fetch_value(self):",
        "    return self.value",
    ])
    names = [o.name for o in extract_named_occurrences("a.py", content)]
    assert "get" in DENY_LIST
    assert names == ["fetch_value"]


MIXED = "\n".join([
    "def get(self):",
    "    pass",
    "int compute_area(int w) {",
    "    return w * w;",
    "}",
])


def test_family_is_chosen_before_the_deny_list():
    # the keyword family matches first, even though its only name is denied
    assert select_family(MIXED).name == "keyword"
    assert extract_named_occurrences("mixed.txt", MIXED) == []


def test_denied_match_counts_as_a_match_for_fallback():
    occurrences, used_fallback = collect_occurrences({
        "mixed.txt": MIXED,
        "a.jsx": "render(props) {\n}\n",
    })
    assert not used_fallback
    assert occurrences == []


def test_javascript_assignments():
    content = "\n".join([
        "const formatPrice = function(value) {",
        "  return value.toFixed(2);",
        "};",
        "export const sumAll = (xs) => xs.reduce((a, b) => a + b, 0);",
    ])
    names = [o.name for o in extract_named_occurrences("util.js", content)]
    assert names == ["formatPrice", "sumAll"]


def test_generic_fallback_when_nothing_matches():
    content = {
        "a.jsx": "render(props) {\n  return props.child;\n}\n",
        "b.jsx": "render(props) {\n  return props.child;\n}\n",
    }
    occurrences, used_fallback = collect_occurrences(content)

    assert used_fallback
    assert [(o.file_path, o.name, o.family) for o in occurrences] == [
        ("a.jsx", "render", "generic"),
        ("b.jsx", "render", "generic"),
    ]


def test_no_fallback_when_any_file_matches():
    content = {
        "a.jsx": "render(props) {\n}\n",
        "b.py": "def render_page(request):\n    pass\n",
    }
    occurrences, used_fallback = collect_occurrences(content)

    assert not used_fallback
    assert [o.name for o in occurrences] == ["render_page"]


def test_group_by_name():
    content = {
        "a.py": "def one(x):\n    pass\ndef two(x):\n    pass\n",
        "b.py": "def one(x):\n    pass\n",
    }
    occurrences, _ = collect_occurrences(content)
    groups = group_by_name(occurrences)
    assert {name: len(idx) for name, idx in groups.items()} == {"one": 2, "two": 1}


def test_duplicate_names_across_files(tmp_path):
    files = [
        write_lines(tmp_path / f"mod_{i}.py", [
            "",
            "def render_total(order):",
            "    return order.total",
        ])
        for i in range(3)
    ]

    result = find_duplicate_names(files, threshold=0.8, jobs=2)

    assert len(result.pairs) == 3
    assert all(p.name == "render_total" for p in result.pairs)
    assert all(p.similarity == 1.0 for p in result.pairs)
    assert all(p.first.line_number == 2 for p in result.pairs)

    assert len(result.summary) == 1
    assert result.summary[0].name == "render_total"
    assert result.summary[0].count == 3
    assert [o.file_path for o in result.summary[0].occurrences] == sorted(files)
    assert result.duplicated_occurrence_count == 3


def test_dissimilar_declarations_are_dropped(tmp_path):
    a = write_lines(tmp_path / "a.py", ["def shared_name(a):", "    pass"])
    b = write_lines(tmp_path / "b.py", [
        "def shared_name(first_argument, second_argument, *extra, **options):",
        "    pass",
    ])

    result = find_duplicate_names([a, b], threshold=0.8, jobs=2)

    assert result.pairs == []
    assert result.summary == []
    assert len(result.occurrences) == 2


def test_unreadable_files_are_skipped(tmp_path):
    a = write_lines(tmp_path / "a.py", ["def lonely_function(x):", "    pass"])

    result = find_duplicate_names([a, str(tmp_path / "gone.py")], threshold=0.8)

    assert [o.name for o in result.occurrences] == ["lonely_function"]
    assert result.pairs == []
