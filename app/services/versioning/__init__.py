"""SOA version control: structural patches and the version log service."""

from .patch import apply_patch, diff_states, invert_patch, replay_forward, unwind_backward
from .version_service import VersionService

__all__ = [
    "VersionService",
    "apply_patch",
    "diff_states",
    "invert_patch",
    "replay_forward",
    "unwind_backward",
]
