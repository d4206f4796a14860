import os
from typing import List, Optional

import pandas as pd

from .config import FlyerConfig
from .errors import SpreadsheetError
from .render import Encoder, QrBatchRenderer

URL_COLUMN = "URL"


def read_url_rows(input_file_path: str, column: str = URL_COLUMN) -> List[str]:
    """
    Reads the URLs to encode from the first sheet of a spreadsheet.

    Args:
        input_file_path (str): An .xlsx/.xls workbook or a .csv file.
        column (str): Header of the column holding the URLs.

    Returns:
        List[str]: Non-empty URL cells in row order.
    """
    if not os.path.isfile(input_file_path):
        raise SpreadsheetError(f"The file '{input_file_path}' was not found.")

    try:
        if input_file_path.lower().endswith('.csv'):
            df = pd.read_csv(input_file_path, dtype=str)
        else:
            # First sheet only, like the exported workbooks.
            df = pd.read_excel(input_file_path, sheet_name=0, dtype=str)
    except (ValueError, OSError) as e:
        raise SpreadsheetError(f"Could not read '{input_file_path}': {e}") from e

    if column not in df.columns:
        raise SpreadsheetError(
            f"The file '{input_file_path}' has no '{column}' column "
            f"(found: {', '.join(map(str, df.columns))})")

    urls = df[column].dropna().astype(str).str.strip()
    return [url for url in urls if url]


def render_from_spreadsheet(input_file_path: str, output_dir: str,
                            config: Optional[FlyerConfig] = None,
                            column: str = URL_COLUMN,
                            encoder: Optional[Encoder] = None) -> int:
    urls = read_url_rows(input_file_path, column)
    print(f"📄 Found {len(urls)} URLs in '{input_file_path}'")
    return QrBatchRenderer(config, encoder).render_targets(urls, output_dir)
