import csv
import logging
from typing import Dict, Iterable, Iterator, List, Optional, TextIO, Tuple, Union

from errors import MalformedRecordError, SourceError
from models import AccountSnapshot, Transaction, parse_transaction

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "client", "tx")
AMOUNT_COLUMN = "amount"
OUTPUT_COLUMNS = ["client", "available", "held", "total", "locked"]

ParsedRow = Tuple[int, Union[Transaction, MalformedRecordError]]


class TransactionSource:
    """
    Lazy reader over a transactions CSV file.

    Opening validates the header, so an unusable file fails with SourceError
    before any row is read. Iterating yields (line_number, Transaction) or
    (line_number, MalformedRecordError) in file order.
    """

    def __init__(self, name: str, stream: TextIO, reader, columns: Dict[str, int]):
        self.name = name
        self._stream = stream
        self._reader = reader
        self._columns = columns
        self._width = max(columns.values()) + 1

    @classmethod
    def open(cls, path: str) -> "TransactionSource":
        try:
            stream = open(path, "r", newline="", encoding="utf-8-sig")
        except OSError as e:
            raise SourceError(str(path), e.strerror or str(e)) from e

        reader = csv.reader(stream)
        try:
            columns = cls._read_header(str(path), reader)
        except SourceError:
            stream.close()
            raise
        return cls(str(path), stream, reader, columns)

    @staticmethod
    def _read_header(name: str, reader) -> Dict[str, int]:
        try:
            header = next(reader, None)
        except (csv.Error, UnicodeDecodeError) as e:
            raise SourceError(name, f"unreadable header: {e}") from e

        if not header:
            raise SourceError(name, "missing header")

        columns = {field.strip().lower(): index for index, field in enumerate(header)}
        missing = [column for column in REQUIRED_COLUMNS if column not in columns]
        if missing:
            raise SourceError(name, f"header lacks columns {missing}")
        return columns

    def __iter__(self) -> Iterator[ParsedRow]:
        try:
            for row in self._reader:
                if not any(field.strip() for field in row):
                    continue
                line_number = self._reader.line_num
                try:
                    transaction = self._parse_row(row)
                except MalformedRecordError as e:
                    yield line_number, e
                    continue
                yield line_number, transaction
        except (csv.Error, UnicodeDecodeError) as e:
            raise SourceError(self.name, f"unreadable row after line {self._reader.line_num}: {e}") from e

    def transactions(self) -> Iterator[Transaction]:
        """Valid transactions only; malformed rows are logged and skipped."""
        for line_number, parsed in self:
            if isinstance(parsed, MalformedRecordError):
                logger.warning(f"Skipping line {line_number}: {parsed}")
                continue
            yield parsed

    def _parse_row(self, row: List[str]) -> Transaction:
        if len(row) > self._width:
            raise MalformedRecordError(f"expected at most {self._width} fields, got {len(row)}")

        def field(column: str) -> Optional[str]:
            index = self._columns.get(column)
            if index is None or index >= len(row):
                return None
            return row[index]

        values = {column: field(column) for column in REQUIRED_COLUMNS}
        missing = [column for column, value in values.items() if value is None]
        if missing:
            raise MalformedRecordError(f"missing fields {missing}")

        return parse_transaction(values["type"], values["client"], values["tx"], field(AMOUNT_COLUMN))

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> "TransactionSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def write_accounts(snapshots: Iterable[AccountSnapshot], stream: TextIO) -> None:
    """Serialize account snapshots as CSV with fixed-scale amounts."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_COLUMNS)
    for snapshot in snapshots:
        writer.writerow([
            snapshot.client_id,
            str(snapshot.available),
            str(snapshot.held),
            str(snapshot.total),
            str(snapshot.locked).lower(),
        ])
