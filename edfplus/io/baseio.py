"""
baseio
======

Classes
-------

BaseIO        - abstract class which should be overridden, managing how a
                file will be read or written
"""

from __future__ import annotations
from pathlib import Path
import logging

from edfplus import logging_handler


class BaseIO:
    """
    Generic class to handle the file read/write objects of edfplus.

    Each IO owns its file handle: ``close()`` releases it, and an IO is a
    context manager that closes itself on exit.

    Each class declares whether it reads or writes files with
    **is_readable** and **is_writable**.
    """

    is_readable = False
    is_writable = False

    name = "BaseIO"
    description = ""
    extensions = []

    mode = "file"

    def __init__(self, filename: str | Path = None, **kargs):
        self.filename = str(filename)
        # create a logger for the IO class
        fullname = self.__class__.__module__ + "." + self.__class__.__name__
        self.logger = logging.getLogger(fullname)
        # create a logger for 'edfplus' and add a handler to it if it doesn't
        # have one already.
        # (it will also not add one if the root logger has a handler)
        corename = self.__class__.__module__.split(".")[0]
        corelogger = logging.getLogger(corename)
        rootlogger = logging.getLogger()
        if not corelogger.handlers and not rootlogger.handlers:
            corelogger.addHandler(logging_handler)

    def close(self):
        """Release the file handle"""
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return f"{self.__class__.__name__}: {self.filename}"
