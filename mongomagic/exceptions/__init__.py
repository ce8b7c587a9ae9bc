##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Module of all mongo-magic exception types.

Every error that should stop an install run derives from `MongoMagicError`.
They propagate up to `mongomagic.main.main`, which logs them and exits with 1.
"""

# Pylint complains that these exceptions are no different from Exception
# but we don't care, we just need new names for exceptions here
# pylint: disable=W0235

__all__ = (
    "MongoMagicError",
    "ConflictError",
    "InvalidChoiceError",
    "BackupError",
    "DownloadError",
    "ChecksumError",
    "LoopbackError",
    "ProcessManagerError",
    "ProcessStateError",
    "InstallConfigError",
)


class MongoMagicError(Exception):
    """
    Base class for fatal mongo-magic errors.
    """


class ConflictError(MongoMagicError):
    """
    Exception to signal that a MongoDB instance is already running.
    """


class InvalidChoiceError(MongoMagicError):
    """
    Exception for a menu or prompt answer outside the accepted set.
    """


class BackupError(MongoMagicError):
    """
    Exception for a backup archive that could not be created. Raised
    before the data directory is touched.
    """


class DownloadError(MongoMagicError):
    """
    Exception for a failed artifact download.
    """


class ChecksumError(MongoMagicError):
    """
    Exception for a downloaded artifact whose SHA-256 digest does not match.
    """

    def __init__(self, name: str, expected: str, actual: str):
        super().__init__(f"Checksum mismatch for {name}: expected {expected}, got {actual}")
        self.name = name
        self.expected = expected
        self.actual = actual


class LoopbackError(MongoMagicError):
    """
    Exception to signal that no usable loopback address could be obtained.
    """


class ProcessManagerError(MongoMagicError):
    """
    Exception for a process manager command that failed, or a managed
    process that never became reachable.
    """


class ProcessStateError(MongoMagicError):
    """
    Exception for an illegal transition of a managed process.
    """

    def __init__(self, current, requested: str):
        super().__init__(f"Cannot {requested} a process that is {current.value}.")
        self.current = current
        self.requested = requested


class InstallConfigError(MongoMagicError):
    """
    Exception for a mongo-magic configuration that is missing or malformed.
    """
