from csvview_server.table import (
    TableQuery,
    apply_filters,
    column_values,
    display_columns,
    natural_key,
    query_table,
    search_rows,
    sort_rows,
)

HEADERS = ["group", "text", "message_id"]
ROWS = [
    {"group": "IraqJobz", "text": "Junior Accountant in Sulaymaniyah", "message_id": "9839"},
    {"group": "IraqJobz", "text": "Deputy Manager Baghdad", "message_id": "10"},
    {"group": "ErbilWork", "text": "Sales engineer", "message_id": "200"},
    {"group": "ErbilWork", "text": "", "message_id": "2"},
]


def test_natural_sort_orders_numbers_numerically():
    ordered = sort_rows(ROWS, "message_id")
    assert [r["message_id"] for r in ordered] == ["2", "10", "200", "9839"]


def test_sort_descending_and_text_case_insensitive():
    rows = [{"v": "b"}, {"v": "A"}, {"v": "c"}]
    assert [r["v"] for r in sort_rows(rows, "v", descending=True)] == ["c", "b", "A"]
    assert natural_key("file2") < natural_key("file10")


def test_sort_without_key_keeps_order():
    assert sort_rows(ROWS, None) == ROWS


def test_filters_are_case_insensitive_substrings():
    result = apply_filters(ROWS, {"group": "erbil", "text": "all", "message_id": ""})
    assert [r["message_id"] for r in result] == ["200", "2"]


def test_search_matches_substring_and_typos():
    assert [r["message_id"] for r in search_rows(HEADERS, ROWS, "baghdad")] == ["10"]
    typo = search_rows(HEADERS, ROWS, "acountant")
    assert [r["message_id"] for r in typo] == ["9839"]


def test_blank_search_returns_everything():
    assert search_rows(HEADERS, ROWS, "   ") == ROWS


def test_column_values_are_unique_sorted_and_capped():
    values = column_values(HEADERS, ROWS)
    assert values["group"] == ["ErbilWork", "IraqJobz"]
    assert "" not in values["text"]
    many = [{"n": str(i)} for i in range(100)]
    assert len(column_values(["n"], many, limit=50)["n"]) == 50


def test_query_table_combines_filter_search_sort():
    query = TableQuery(search="", filters={"group": "IraqJobz"}, sort="message_id", descending=True)
    result = query_table(HEADERS, ROWS, query)
    assert [r["message_id"] for r in result] == ["9839", "10"]


def test_display_columns_keep_only_known_headers():
    assert display_columns(HEADERS, TableQuery()) == HEADERS
    assert display_columns(HEADERS, TableQuery(columns=["text", "nope"])) == ["text"]
