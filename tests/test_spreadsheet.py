import os

import pandas as pd
import pytest

from qrflyers.errors import SpreadsheetError
from qrflyers.spreadsheet import read_url_rows, render_from_spreadsheet


@pytest.fixture
def rows():
    return pd.DataFrame({
        'Name': ["first", "second", "blank", "third"],
        'URL': ["https://example.com/1", " https://example.com/2 ", None, "https://example.com/3"],
    })


def test_reads_urls_from_workbook(tmp_path, rows):
    path = str(tmp_path / "urls.xlsx")
    rows.to_excel(path, index=False)

    assert read_url_rows(path) == [
        "https://example.com/1", "https://example.com/2", "https://example.com/3"]


def test_reads_urls_from_csv_with_custom_column(tmp_path, rows):
    path = str(tmp_path / "urls.csv")
    rows.rename(columns={'URL': 'Link'}).to_csv(path, index=False)

    assert len(read_url_rows(path, column="Link")) == 3


def test_missing_column_or_file(tmp_path, rows):
    path = str(tmp_path / "urls.csv")
    rows.to_csv(path, index=False)

    with pytest.raises(SpreadsheetError, match="no 'Link' column"):
        read_url_rows(path, column="Link")
    with pytest.raises(SpreadsheetError, match="not found"):
        read_url_rows(str(tmp_path / "missing.xlsx"))


def test_render_from_spreadsheet(tmp_path, rows):
    path = str(tmp_path / "urls.csv")
    rows.to_csv(path, index=False)
    out = str(tmp_path / "qrs")
    encoded = []

    def encoder(data, output_path):
        encoded.append((data, os.path.basename(output_path)))
        open(output_path, 'wb').close()

    assert render_from_spreadsheet(path, out, encoder=encoder) == 3
    assert encoded == [
        ("https://example.com/1", "qr_1.png"),
        ("https://example.com/2", "qr_2.png"),
        ("https://example.com/3", "qr_3.png"),
    ]
