"""
SKU Import Workflow

Turns tabular rows (manual entry forms, CSV files) into SKU records with:
- Auto-mapping of column names through case-insensitive aliases
- Positive defaults for missing or unparsable numeric fields, so the
  simulator is always well-defined
- Per-row validation (rows whose values fail SKU validation are discarded)
- Preview with valid/discarded counts
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from ..domain.models import SKU

logger = logging.getLogger(__name__)


# Column mappings: canonical field name -> list of accepted aliases (case-insensitive)
COLUMN_ALIASES = {
    "id": ["id", "sku", "sku_id", "code", "item_code", "product_code"],
    "name": ["name", "description", "product_name", "item_name"],
    "current_inventory": ["current_inventory", "inventory", "on_hand", "stock", "currentinventory"],
    "daily_sales_rate": ["daily_sales_rate", "daily_sales", "sales_rate", "sales", "dailysalesrate"],
    "sales_variability": ["sales_variability", "variability", "demand_cv", "cv", "salesvariability"],
    "lead_time_days": ["lead_time_days", "lead_time", "leadtime", "delivery_days", "leadtimedays"],
    "lead_time_variability": [
        "lead_time_variability", "lead_time_std", "leadtime_variability", "leadtimevariability",
    ],
    "reorder_point": ["reorder_point", "rop", "reorderpoint"],
    "reorder_quantity": ["reorder_quantity", "order_quantity", "roq", "reorderquantity"],
    "unit_cost": ["unit_cost", "cost", "price", "unitcost"],
    "holding_cost_percent": ["holding_cost_percent", "holding_cost", "holding", "holdingcostpercent"],
}

# Defaults used when a field is missing, blank or unparsable
FIELD_DEFAULTS: Dict[str, float] = {
    "current_inventory": 100.0,
    "daily_sales_rate": 10.0,
    "sales_variability": 20.0,
    "lead_time_days": 7.0,
    "lead_time_variability": 2.0,
    "reorder_point": 50.0,
    "reorder_quantity": 100.0,
    "unit_cost": 25.0,
    "holding_cost_percent": 18.0,
}

# Fields where zero would leave the simulator ill-defined: 0 falls back to default
POSITIVE_FIELDS = {"daily_sales_rate", "lead_time_days", "reorder_quantity"}


def default_sku_id(position: int) -> str:
    """
    Positional id for rows without one (1-based).

    Example:
        >>> default_sku_id(7)
        'SKU-0007'
    """
    return f"SKU-{position:04d}"


@dataclass
class ImportRow:
    """Single input row with validation results."""
    row_number: int
    raw_data: Dict[str, Any]
    mapped_data: Dict[str, Any] = field(default_factory=dict)
    is_valid: bool = False
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    sku_object: Optional[SKU] = None


@dataclass
class ImportPreview:
    """Parse and validation results for a set of rows."""
    rows: List[ImportRow]
    total_rows: int
    valid_rows: int
    discarded_rows: int
    duplicate_skus: Set[str] = field(default_factory=set)
    column_mapping: Dict[str, str] = field(default_factory=dict)  # input col -> canonical field

    @property
    def skus(self) -> List[SKU]:
        return [r.sku_object for r in self.rows if r.is_valid and r.sku_object is not None]


class SKUImporter:
    """Maps rows to SKU records with defaults and validation."""

    def auto_map_columns(self, headers: Sequence[str]) -> Dict[str, str]:
        """
        Auto-map column names to canonical field names using aliases.

        Args:
            headers: Column names as found in the input

        Returns:
            Dict mapping input column name -> canonical field name
        """
        mapping: Dict[str, str] = {}
        claimed: Set[str] = set()
        for canonical, aliases in COLUMN_ALIASES.items():
            alias_set = {a.lower() for a in aliases}
            for header in headers:
                if header in mapping:
                    continue
                if header.strip().lower() in alias_set and canonical not in claimed:
                    mapping[header] = canonical
                    claimed.add(canonical)
                    break
        return mapping

    def _parse_number(self, name: str, raw: Any, row: ImportRow) -> float:
        default = FIELD_DEFAULTS[name]
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return default
        try:
            value = float(raw)
        except (TypeError, ValueError):
            row.warnings.append(f"{name}: cannot parse {raw!r}, using {default:g}")
            return default
        if name in POSITIVE_FIELDS and value == 0:
            row.warnings.append(f"{name}: zero is not allowed, using {default:g}")
            return default
        return value

    def build_row(self, row_number: int, position: int, raw_row: Mapping[str, Any],
                  column_mapping: Mapping[str, str]) -> ImportRow:
        """Map, default and validate one row (position is the 1-based data row index)."""
        row = ImportRow(row_number=row_number, raw_data=dict(raw_row))
        row.mapped_data = {
            canonical: raw_row[col] for col, canonical in column_mapping.items() if col in raw_row
        }

        sku_id = str(row.mapped_data.get("id") or "").strip() or default_sku_id(position)
        name = str(row.mapped_data.get("name") or "").strip() or f"Product {position}"
        numbers = {
            name_: self._parse_number(name_, row.mapped_data.get(name_), row)
            for name_ in FIELD_DEFAULTS
        }

        try:
            row.sku_object = SKU(id=sku_id, name=name, **numbers)
            row.is_valid = True
        except ValueError as e:
            row.errors.append(str(e))
        return row

    def parse_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        column_mapping: Optional[Dict[str, str]] = None,
    ) -> ImportPreview:
        """
        Parse and validate dict rows.

        Args:
            rows: Row dicts (e.g. from csv.DictReader or a form)
            column_mapping: Optional manual mapping (input col -> canonical field)

        Returns:
            ImportPreview with parsed and validated rows
        """
        rows = list(rows)
        if column_mapping is None:
            headers: List[str] = []
            for raw in rows:
                headers.extend(h for h in raw.keys() if h not in headers)
            column_mapping = self.auto_map_columns(headers)

        import_rows: List[ImportRow] = []
        seen: Set[str] = set()
        duplicates: Set[str] = set()

        for position, raw_row in enumerate(rows, start=1):
            import_row = self.build_row(position + 1, position, raw_row, column_mapping)
            if import_row.sku_object is not None:
                sku_id = import_row.sku_object.id
                if sku_id in seen:
                    duplicates.add(sku_id)
                    import_row.errors.append(f"Duplicate SKU in input: {sku_id}")
                    import_row.is_valid = False
                    import_row.sku_object = None
                else:
                    seen.add(sku_id)
            import_rows.append(import_row)

        valid = sum(1 for r in import_rows if r.is_valid)
        if valid < len(import_rows):
            logger.warning("Discarded %d of %d SKU rows", len(import_rows) - valid, len(import_rows))

        return ImportPreview(
            rows=import_rows,
            total_rows=len(import_rows),
            valid_rows=valid,
            discarded_rows=len(import_rows) - valid,
            duplicate_skus=duplicates,
            column_mapping=dict(column_mapping),
        )

    def read_csv(self, filepath: Path, encoding: str = 'utf-8') -> ImportPreview:
        """
        Parse a CSV file (delimiter sniffed, ',' fallback) into an ImportPreview.

        Falls back to latin-1 when the file is not valid UTF-8.
        """
        filepath = Path(filepath)
        try:
            text = filepath.read_text(encoding=encoding)
        except UnicodeDecodeError:
            logger.warning("%s decode failed for %s, trying latin-1", encoding, filepath)
            text = filepath.read_text(encoding='latin-1')

        try:
            delimiter = csv.Sniffer().sniff(text[:4096], delimiters=",;\t").delimiter
        except csv.Error:
            delimiter = ','

        reader = csv.DictReader(text.splitlines(), delimiter=delimiter)
        return self.parse_rows(list(reader))


def sku_from_record(record: Mapping[str, Any], position: int = 1) -> SKU:
    """
    Build one SKU from a form-style record (canonical or aliased keys).

    Raises ValueError when the resulting values fail SKU validation.
    """
    importer = SKUImporter()
    mapping = importer.auto_map_columns(list(record.keys()))
    row = importer.build_row(position, position, record, mapping)
    if row.sku_object is None:
        raise ValueError("; ".join(row.errors))
    return row.sku_object
