"""Concurrent repository reconciliation for Tugboat."""

from .manager import RepositoryManager, StatusReport, TargetListing, ListingEntry, status_flags
from .utils import GitSyncResult, OperationOutcome, OperationReport, OutcomeState
from .operations import GitCommandRunner, CommandResult
from .status import RepositoryStatus, compute_status
from .targets import ExpansionMode, RepositoryLocation, expand_targets
from .foldout import FoldoutEntry, load_foldout, validate_foldout
from .remote_index import RemoteIndex, build_remote_index, annotate

__all__ = [
    'RepositoryManager',
    'StatusReport',
    'TargetListing',
    'ListingEntry',
    'status_flags',
    'GitSyncResult',
    'OperationOutcome',
    'OperationReport',
    'OutcomeState',
    'GitCommandRunner',
    'CommandResult',
    'RepositoryStatus',
    'compute_status',
    'ExpansionMode',
    'RepositoryLocation',
    'expand_targets',
    'FoldoutEntry',
    'load_foldout',
    'validate_foldout',
    'RemoteIndex',
    'build_remote_index',
    'annotate',
]
