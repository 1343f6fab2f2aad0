"""
Reader configuration.

Options that change how files are opened and traced, never what is parsed.
"""
from dataclasses import dataclass


@dataclass
class ReaderConfig:
    """
    Attributes:
        encoding: Text encoding used to open the input file
        debug: Trace every header and the action taken at DEBUG level on the
            'inpreader' logger when no logger is passed explicitly
    """
    encoding: str = "utf-8"
    debug: bool = False
