"""On-disk layout of a fetched (or transformed) data tree."""

import json
import shutil
from pathlib import Path
from typing import Any, List

from conduit.errors import ConfigError, ValidationError
from conduit.logger import get_logger

logger = get_logger("conduit.store")

CUSTOMERS_FILE = "customers.json"
ACCOUNTS_FILE = "accounts.json"
TRANSACTIONS_DIR = "transactions"
INSTITUTIONS_DIR = "institutions"


def read_json(path: Path) -> Any:
    """Load a JSON file, raising ValidationError if it is missing or malformed."""
    path = Path(path)
    if not path.is_file():
        raise ValidationError(f"File not found: {path}", identifier=str(path))
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"Invalid JSON in file: {path} ({e})", identifier=str(path)) from e


def trees_overlap(first: Path, second: Path) -> bool:
    """True if the two directories are the same or one lies inside the other."""
    first, second = Path(first).resolve(), Path(second).resolve()
    return first == second or first in second.parents or second in first.parents


def validate_json(path: Path) -> None:
    """Check that a file exists and holds well-formed JSON."""
    read_json(path)


def write_json(path: Path, data: Any) -> Path:
    """Pretty-print data to path, then re-read it to confirm it is valid."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    validate_json(path)
    return path


class DataTree:
    """Paths of one data tree.

    <root>/customers.json
    <root>/accounts.json
    <root>/transactions/transactions_<acctId>_page_<n>.json
    <root>/institutions/institution_<instId>.json
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"DataTree({str(self.root)!r})"

    @property
    def customers_path(self) -> Path:
        return self.root / CUSTOMERS_FILE

    @property
    def accounts_path(self) -> Path:
        return self.root / ACCOUNTS_FILE

    @property
    def transactions_dir(self) -> Path:
        return self.root / TRANSACTIONS_DIR

    @property
    def institutions_dir(self) -> Path:
        return self.root / INSTITUTIONS_DIR

    def transaction_page_path(self, account_id: str, page: int) -> Path:
        return self.transactions_dir / f"transactions_{account_id}_page_{page}.json"

    def institution_path(self, institution_id: str) -> Path:
        return self.institutions_dir / f"institution_{institution_id}.json"

    def transaction_files(self) -> List[Path]:
        if not self.transactions_dir.is_dir():
            return []
        return sorted(p for p in self.transactions_dir.glob("transactions_*.json") if p.is_file())

    def institution_files(self) -> List[Path]:
        if not self.institutions_dir.is_dir():
            return []
        return sorted(p for p in self.institutions_dir.glob("institution_*.json") if p.is_file())

    def reset(self) -> None:
        """Remove any previous contents and create the empty layout."""
        cwd = Path.cwd().resolve()
        root = self.root.resolve()
        if root == cwd or root in cwd.parents:
            raise ConfigError(f"Refusing to clean {self.root}: it contains the working directory")
        if self.root.exists():
            logger.info(f"Cleaning existing directory: {self.root}")
            shutil.rmtree(self.root)
        self.transactions_dir.mkdir(parents=True)
        self.institutions_dir.mkdir(parents=True)
