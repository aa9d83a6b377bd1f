from quadro.models.board_column import BoardColumn
from quadro.models.issue import Issue
from quadro.models.project import Project
from quadro.models.project_invitation import ProjectInvitation
from quadro.models.project_member import ProjectMember
from quadro.models.user import AppUser

__all__ = [
    "AppUser",
    "BoardColumn",
    "Issue",
    "Project",
    "ProjectInvitation",
    "ProjectMember",
]
