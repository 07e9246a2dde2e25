"""
Gene list loading from a two-column CSV file.
"""

import csv
import logging
from pathlib import Path
from typing import List, Union

from .errors import ConfigurationError, create_error_context
from .models.entities import Gene

logger = logging.getLogger(__name__)

MISSING_VALUE = "NA"


def _clean_field(value: str) -> str:
    return value.replace('"', "").strip()


def load_genes_csv(path: Union[str, Path]) -> List[Gene]:
    """
    Load genes from ``name,id`` rows.

    Rows with fewer than two columns, or whose name or id is empty or "NA",
    are skipped.

    Args:
        path: CSV file path

    Returns:
        Genes in file order

    Raises:
        ConfigurationError: If the file cannot be read
    """
    path = Path(path)
    genes = []

    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            for row in csv.reader(f, skipinitialspace=True):
                if len(row) < 2:
                    continue
                name = _clean_field(row[0])
                gene_id = _clean_field(row[1])
                if not name or not gene_id or MISSING_VALUE in (name, gene_id):
                    continue
                genes.append(Gene(name=name, id=gene_id))
    except OSError as e:
        raise ConfigurationError(
            f"Could not read genes file {path}: {e}",
            context=create_error_context("load_genes_csv", genes_csv=str(path)),
            original_exception=e
        ) from e

    logger.info("Parsed %d genes from CSV", len(genes), extra={"genes_csv": str(path)})
    return genes
