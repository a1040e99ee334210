"""
Delimited flat-file reader.
"""

import csv
from pathlib import Path
from typing import IO, Sequence

from pydantic import BaseModel, ValidationError

from batchflow.core.errors import ConfigurationError, ParseError
from batchflow.observability.logger import get_logger

from .base_reader import BaseReader

logger = get_logger(__name__)


class DelimitedFileReader(BaseReader):
    """
    Reads one record per line from a delimited text file.

    Fields are mapped in declared order onto the record type's fields.
    Blank lines and comment lines are ignored; the first ``lines_to_skip``
    lines (e.g. a header) are never parsed. Lines are decoded one at a
    time, so a line that is not valid in ``encoding`` raises ParseError and
    reading can go on with the next one.
    """

    def __init__(
        self,
        path: str | Path,
        names: Sequence[str],
        record_type: type[BaseModel],
        delimiter: str = ",",
        quotechar: str = '"',
        lines_to_skip: int = 0,
        encoding: str = "utf-8",
        comment_prefixes: Sequence[str] = ("#",),
        strict: bool = True,
    ):
        """
        Initialize delimited file reader.

        Args:
            path: Path to the input file
            names: Record field names, in file column order
            record_type: Pydantic model class built from each line
            delimiter: Field delimiter
            quotechar: Quote character for fields containing the delimiter
            lines_to_skip: Leading lines to ignore (header rows)
            encoding: File encoding
            comment_prefixes: Lines starting with one of these are ignored
            strict: Fail lines whose field count differs from len(names);
                when False, short lines are padded with "" and long lines truncated

        Raises:
            ConfigurationError: If names are empty or duplicated
        """
        if not names:
            raise ConfigurationError("Field names must not be empty")
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Field names must be unique: {list(names)}")
        if lines_to_skip < 0:
            raise ConfigurationError(f"lines_to_skip must be >= 0, got {lines_to_skip}")

        self.path = Path(path)
        self.names = list(names)
        self.record_type = record_type
        self.delimiter = delimiter
        self.quotechar = quotechar
        self.lines_to_skip = lines_to_skip
        self.encoding = encoding
        self.comment_prefixes = tuple(comment_prefixes)
        self.strict = strict

        self._file: IO[bytes] | None = None
        self._line_number = 0

    def validate(self) -> None:
        if not self.path.is_file():
            raise ConfigurationError(f"Input file not found: {self.path}")

    def open(self) -> None:
        self.validate()
        self.close()

        self._file = open(self.path, "rb")
        self._line_number = 0

        for _ in range(self.lines_to_skip):
            if not self._file.readline():
                break
            self._line_number += 1

        logger.debug(f"Opened {self.path} (skipped {self._line_number} header line(s))")

    def read(self) -> BaseModel | None:
        if self._file is None:
            raise RuntimeError(f"Reader for {self.path} is not open. Call open() first.")

        while True:
            line = self._file.readline()
            if not line:
                return None
            self._line_number += 1

            raw_line = self._decode(line).rstrip("\r\n")
            if not raw_line.strip() or raw_line.startswith(self.comment_prefixes):
                continue

            return self._map_line(raw_line)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    @property
    def position(self) -> int | None:
        return self._line_number or None

    def _decode(self, line: bytes) -> str:
        try:
            return line.decode(self.encoding)
        except UnicodeDecodeError as e:
            raw_line = line.decode(self.encoding, "replace").rstrip("\r\n")
            raise ParseError(self._line_number, raw_line, str(e)) from e

    def _tokenize(self, raw_line: str) -> list[str]:
        try:
            return next(csv.reader([raw_line], delimiter=self.delimiter, quotechar=self.quotechar))
        except csv.Error as e:
            raise ParseError(self._line_number, raw_line, str(e)) from e

    def _map_line(self, raw_line: str) -> BaseModel:
        tokens = self._tokenize(raw_line)

        if len(tokens) != len(self.names):
            if self.strict:
                raise ParseError(
                    self._line_number,
                    raw_line,
                    f"Incorrect number of tokens found in record: "
                    f"expected {len(self.names)} actual {len(tokens)}",
                )
            tokens = (tokens + [""] * len(self.names))[:len(self.names)]

        try:
            return self.record_type(**dict(zip(self.names, tokens)))
        except ValidationError as e:
            raise ParseError(self._line_number, raw_line, str(e)) from e

    def __repr__(self) -> str:
        return f"DelimitedFileReader(path={self.path}, names={self.names})"
