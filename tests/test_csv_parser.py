from dataset_importer.domain.imports.models import ColumnType
from dataset_importer.domain.imports.processors.csv_processor import parse_csv


def test_parse_simple_csv_with_header():
    parsed = parse_csv("a,b\n1,2\n3,4")

    assert parsed.headers == ["a", "b"]
    assert parsed.rows == [["1", "2"], ["3", "4"]]
    assert parsed.row_count == 2


def test_quoted_field_keeps_comma():
    parsed = parse_csv('a,b\n"x,y",2')

    assert parsed.rows == [["x,y", "2"]]


def test_doubled_quotes_are_unescaped():
    parsed = parse_csv('a,b\n"say ""hi""",2')

    assert parsed.rows == [['say "hi"', "2"]]


def test_quoted_field_spans_lines():
    parsed = parse_csv('a,b\n"line1\nline2",2\n3,4')

    assert parsed.rows == [["line1\nline2", "2"], ["3", "4"]]


def test_crlf_line_endings():
    parsed = parse_csv("a,b\r\n1,2\r\n3,4\r\n")

    assert parsed.headers == ["a", "b"]
    assert parsed.rows == [["1", "2"], ["3", "4"]]


def test_blank_and_all_empty_rows_are_dropped():
    parsed = parse_csv("a,b\n\n1,2\n,\n  \n3,4")

    assert parsed.rows == [["1", "2"], ["3", "4"]]


def test_fields_are_trimmed():
    parsed = parse_csv(" a , b \n 1 , 2 ")

    assert parsed.headers == ["a", "b"]
    assert parsed.rows == [["1", "2"]]


def test_short_rows_are_padded_and_long_rows_truncated():
    parsed = parse_csv("a,b,c\n1\n1,2,3,4")

    assert parsed.rows == [["1", "", ""], ["1", "2", "3"]]
    assert all(len(row) == len(parsed.headers) for row in parsed.rows)


def test_headerless_content_gets_generated_names():
    parsed = parse_csv("1,2\n3,4", has_header=False)

    assert parsed.headers == ["col_0", "col_1"]
    assert parsed.rows == [["1", "2"], ["3", "4"]]


def test_blank_header_cells_get_generated_names():
    parsed = parse_csv("a,,c\n1,2,3")

    assert parsed.headers == ["a", "col_1", "c"]


def test_empty_content_returns_none():
    assert parse_csv("") is None
    assert parse_csv("\n\r\n\n") is None
    assert parse_csv(",,\n,") is None


def test_header_only_content_has_no_rows():
    parsed = parse_csv("a,b")

    assert parsed is not None
    assert parsed.headers == ["a", "b"]
    assert parsed.row_count == 0


def test_unterminated_quote_keeps_rest_of_input():
    parsed = parse_csv('a,b\n1,"open\nstill open')

    assert parsed.rows == [["1", "open\nstill open"]]


def test_estimated_byte_size_counts_utf8_bytes():
    content = "é,b\n1,2"

    parsed = parse_csv(content)

    assert parsed.estimated_byte_size == len(content) + 1


def test_columns_are_profiled():
    parsed = parse_csv("name,score\nalice,1\nbob,\ncarol,3")

    name, score = parsed.columns
    assert name.name == "name"
    assert name.type == ColumnType.STRING
    assert score.type == ColumnType.NUMBER
    assert score.null_count == 1
    assert score.unique_count == 3
    assert score.sample_values == ["1", "3"]
