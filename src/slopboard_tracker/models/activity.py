"""Activity targets reported by editor plugins."""

import os
from typing import Optional

from pydantic import BaseModel, Field


class ActivityTarget(BaseModel):
    """
    The thing the user is working on, usually an open file.

    The editor decides exclusion rules on its side and reports the verdict
    in ``trackable``; the daemon only adds a scheme/untitled check.
    """

    path: str = Field(..., description="Filesystem path or URI path of the document")
    project_root: Optional[str] = Field(
        None, description="Workspace folder containing the document"
    )
    project_name: Optional[str] = Field(None, description="Explicit project label")
    language_hint: Optional[str] = Field(
        None, description="Editor language id (e.g. 'python')"
    )
    scheme: str = Field("file", description="URI scheme of the document")
    untitled: bool = Field(False, description="Unsaved buffer without a file")
    trackable: bool = Field(True, description="Editor-side inclusion verdict")

    @property
    def key(self) -> str:
        """Identity used to decide whether two events refer to the same target."""
        return f"{self.scheme}:{self.path}"

    @property
    def project(self) -> str:
        if self.project_name:
            return self.project_name
        if self.project_root:
            return os.path.basename(os.path.normpath(self.project_root)) or "unknown"
        return "unknown"

    @property
    def relative_path(self) -> str:
        """
        Path relative to the project root.

        Falls back to the bare file name so that no absolute path ever ends
        up in a session.
        """
        if self.project_root:
            root = os.path.normpath(self.project_root)
            path = os.path.normpath(self.path)
            try:
                if os.path.commonpath([root, path]) == root:
                    return os.path.relpath(path, root)
            except ValueError:
                # Different drives or mixed absolute/relative paths
                pass
        if os.path.isabs(self.path):
            return os.path.basename(self.path)
        return self.path


def is_trackable_target(target: Optional[ActivityTarget]) -> bool:
    """Default trackability predicate: real, saved files the editor did not exclude."""
    if target is None:
        return False
    return target.trackable and target.scheme == "file" and not target.untitled
