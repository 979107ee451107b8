"""
State for the three-step CSV import flow: upload, mapping, confirm.

The screen that drives the flow owns one ImportWizard and calls its mutators;
nothing here depends on a UI framework.
"""
import logging
from enum import Enum
from typing import List, Optional

from dataset_importer.api.schemas.shared import ColumnMapping, ImportCsvRequest
from dataset_importer.domain.imports.mapper import auto_detect_column_mapping
from dataset_importer.domain.imports.models import ParsedTable
from dataset_importer.domain.imports.processors.csv_processor import parse_csv

logger = logging.getLogger(__name__)


class WizardStep(str, Enum):
    UPLOAD = "upload"
    MAPPING = "mapping"
    CONFIRM = "confirm"


_STEP_ORDER = [WizardStep.UPLOAD, WizardStep.MAPPING, WizardStep.CONFIRM]


class ImportWizard:
    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.step = WizardStep.UPLOAD
        self.content = ""
        self.has_header = True
        self.deduplicate = True
        self.error: Optional[str] = None
        self.preview: Optional[ParsedTable] = None
        self.input_column = ""
        self.expected_column: Optional[str] = None
        self.metadata_columns: List[str] = []

    # -------------------------------------------------------
    # Upload step
    # -------------------------------------------------------

    def _parse_and_validate(self) -> bool:
        if not self.content.strip():
            self.error = "Please provide CSV content"
            self.preview = None
            return False

        parsed = parse_csv(self.content, self.has_header)
        if parsed is None or parsed.row_count == 0:
            self.error = "Could not parse CSV content or no data rows found"
            self.preview = None
            return False

        if not parsed.headers:
            self.error = "CSV must have at least one column"
            self.preview = None
            return False

        self.error = None
        self.preview = parsed

        if not self.input_column:
            suggestion = auto_detect_column_mapping(parsed.columns)
            if suggestion is not None:
                self.input_column = suggestion.input_column
                self.expected_column = suggestion.expected_column
                self.metadata_columns = list(suggestion.metadata_columns)
        return True

    def load_content(self, content: str) -> bool:
        self.content = content
        return self._parse_and_validate()

    def set_has_header(self, has_header: bool) -> None:
        self.has_header = has_header
        if self.content:
            self._parse_and_validate()

    # -------------------------------------------------------
    # Mapping step
    # -------------------------------------------------------

    def set_input_column(self, column: str) -> None:
        """Choose the input column, taking it away from any other role."""
        self.input_column = column
        if self.expected_column == column:
            self.expected_column = None
        self.metadata_columns = [c for c in self.metadata_columns if c != column]

    def set_expected_column(self, column: Optional[str]) -> None:
        self.expected_column = None if column in (None, "", "none") else column

    def toggle_metadata_column(self, column: str) -> None:
        if column in self.metadata_columns:
            self.metadata_columns = [c for c in self.metadata_columns if c != column]
        else:
            self.metadata_columns = self.metadata_columns + [column]

    @property
    def available_for_expected(self) -> List[str]:
        if self.preview is None:
            return []
        return [
            h for h in self.preview.headers
            if h != self.input_column and h not in self.metadata_columns
        ]

    @property
    def available_for_metadata(self) -> List[str]:
        if self.preview is None:
            return []
        return [
            h for h in self.preview.headers
            if h != self.input_column and h != self.expected_column
        ]

    @property
    def column_mapping(self) -> ColumnMapping:
        return ColumnMapping(
            input_column=self.input_column,
            expected_column=self.expected_column,
            metadata_columns=list(self.metadata_columns),
        )

    # -------------------------------------------------------
    # Navigation
    # -------------------------------------------------------

    @property
    def can_proceed_to_mapping(self) -> bool:
        return self.preview is not None and self.preview.row_count > 0

    @property
    def can_proceed_to_confirm(self) -> bool:
        return self.input_column != ""

    @property
    def can_import(self) -> bool:
        return self.can_proceed_to_mapping and self.can_proceed_to_confirm

    def next(self) -> WizardStep:
        if self.step == WizardStep.UPLOAD and self.can_proceed_to_mapping:
            self.step = WizardStep.MAPPING
        elif self.step == WizardStep.MAPPING and self.can_proceed_to_confirm:
            self.step = WizardStep.CONFIRM
        return self.step

    def back(self) -> WizardStep:
        index = _STEP_ORDER.index(self.step)
        if index > 0:
            self.step = _STEP_ORDER[index - 1]
        return self.step

    def completed_steps(self) -> List[WizardStep]:
        """Steps before the current one, shown as done in the step indicator."""
        return _STEP_ORDER[:_STEP_ORDER.index(self.step)]

    def build_request(self, deduplicate: Optional[bool] = None) -> ImportCsvRequest:
        """
        Request for the whole file; the orchestrator splits it into chunks.

        Args:
            deduplicate: Overrides the wizard's deduplicate flag when given

        Raises:
            ValueError: The wizard is not ready to import
        """
        if not self.can_import:
            raise ValueError("Import is not ready: load CSV content and choose an input column")
        return ImportCsvRequest(
            content=self.content,
            column_mapping=self.column_mapping,
            has_header=self.has_header,
            deduplicate=self.deduplicate if deduplicate is None else deduplicate,
        )
