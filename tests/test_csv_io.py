import csv
import io

import pytest
from openpyxl import load_workbook

from app.core.csv_io import build_csv, build_xlsx, parse_csv, parse_optional_int
from app.core.exceptions import CsvFormatError


def test_header_is_normalized_and_rows_numbered_from_two() -> None:
    content = "\ufeff Email ,FULL_NAME,Roll_Number\na@college.edu, Asha ,CS01\nb@college.edu,Bala,CS02\n".encode()
    rows = parse_csv(content, ("email", "full_name", "roll_number"), max_rows=10)
    assert rows == [
        (2, {"email": "a@college.edu", "full_name": "Asha", "roll_number": "CS01"}),
        (3, {"email": "b@college.edu", "full_name": "Bala", "roll_number": "CS02"}),
    ]


def test_missing_columns_are_listed() -> None:
    with pytest.raises(CsvFormatError) as exc:
        parse_csv(b"email,name\nx@college.edu,X\n", ("email", "full_name", "roll_number"), max_rows=10)
    assert exc.value.message == "Missing required columns: full_name, roll_number"
    assert exc.value.status_code == 400


def test_empty_file_and_header_only_are_rejected() -> None:
    with pytest.raises(CsvFormatError, match="File is empty"):
        parse_csv(b"  \n", ("code",), max_rows=10)
    with pytest.raises(CsvFormatError, match="at least one data row"):
        parse_csv(b"code,name\n", ("code",), max_rows=10)


def test_row_limit() -> None:
    content = b"code\nA\nB\nC\n"
    with pytest.raises(CsvFormatError, match="Maximum 2 data rows allowed"):
        parse_csv(content, ("code",), max_rows=2)


def test_parse_optional_int() -> None:
    assert parse_optional_int("", "semester") is None
    assert parse_optional_int("4", "semester") == 4
    with pytest.raises(ValueError, match="Invalid semester: four"):
        parse_optional_int("four", "semester")


def test_build_csv_blanks_none() -> None:
    text = build_csv(["Roll", "Section"], [["CS01", None], ["CS02", "A"]])
    assert list(csv.reader(io.StringIO(text))) == [["Roll", "Section"], ["CS01", ""], ["CS02", "A"]]


def test_build_xlsx_has_header_and_rows() -> None:
    data = build_xlsx("Semester 3", ["Roll", "CS301"], [["CS01", "75%"]])
    ws = load_workbook(io.BytesIO(data)).active
    assert ws.title == "Semester 3"
    assert [c.value for c in ws[1]] == ["Roll", "CS301"]
    assert [c.value for c in ws[2]] == ["CS01", "75%"]
    assert ws.freeze_panes == "A2"
