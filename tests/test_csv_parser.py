from csvview_server.csv_parser import decode_csv, parse_csv, preview_csv, to_csv


def test_quoted_field_with_embedded_comma_is_one_value():
    parsed = parse_csv('x,y\n"a,b",c\n')
    assert parsed.headers == ["x", "y"]
    assert parsed.rows == [{"x": "a,b", "y": "c"}]


def test_multiline_field_and_doubled_quotes():
    parsed = parse_csv('h1,h2\n"line1\nline2","say ""hi"""\nplain,row\n')
    assert parsed.rows == [
        {"h1": "line1\nline2", "h2": 'say "hi"'},
        {"h1": "plain", "h2": "row"},
    ]


def test_empty_lines_are_skipped():
    parsed = parse_csv("\n\na,b\n\n1,2\n\n\n3,4\n\n")
    assert parsed.headers == ["a", "b"]
    assert parsed.rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]
    assert parsed.row_count == 2


def test_rows_are_padded_and_truncated_to_header_length():
    parsed = parse_csv("a,b,c\n1\n1,2,3,4\n")
    assert parsed.rows == [
        {"a": "1", "b": "", "c": ""},
        {"a": "1", "b": "2", "c": "3"},
    ]


def test_crlf_line_endings():
    parsed = parse_csv("a,b\r\n1,2\r\n")
    assert parsed.headers == ["a", "b"]
    assert parsed.rows == [{"a": "1", "b": "2"}]


def test_header_only_and_empty_input():
    assert parse_csv("a,b\n").rows == []
    empty = parse_csv("")
    assert empty.headers == [] and empty.rows == []


def test_decode_strips_bom():
    parsed = parse_csv(decode_csv(b"\xef\xbb\xbfa,b\n1,2\n"))
    assert parsed.headers == ["a", "b"]


def test_decode_replaces_invalid_bytes():
    assert decode_csv(b"a\xff,b") == "a\ufffd,b"


def test_parse_is_deterministic():
    text = 'a,b\n"x\ny",2\n3,4\n'
    assert parse_csv(text) == parse_csv(text)


def test_round_trip_through_to_csv():
    headers = ["group", "text", "has_image", "image_path"]
    rows = [
        {"group": "IraqJobz", "text": 'Hiring, "now"', "has_image": "TRUE", "image_path": "a/b/c.jpg"},
        {"group": "Other", "text": "two\nlines", "has_image": "FALSE", "image_path": ""},
        {"group": "", "text": "", "has_image": "", "image_path": ""},
        {"group": "عربي", "text": "plain", "has_image": "TRUE", "image_path": "x\\y.png"},
    ]
    parsed = parse_csv(to_csv(headers, rows))
    assert parsed.headers == headers
    assert parsed.rows == rows


def test_to_csv_quotes_only_when_needed():
    text = to_csv(["a", "b"], [{"a": "x,y", "b": "plain"}])
    assert text == 'a,b\n"x,y",plain\n'


def test_preview_stops_after_max_rows():
    text = "n\n" + "".join(f"{i}\n" for i in range(20))
    preview = preview_csv(text, max_rows=5)
    assert [r["n"] for r in preview.rows] == ["0", "1", "2", "3", "4"]
    assert preview.headers == ["n"]


def test_field_longer_than_default_csv_limit():
    big = "x" * 200_000
    parsed = parse_csv('a,b\n"' + big + '",c\n')
    assert parsed.rows == [{"a": big, "b": "c"}]
