from docshare.models.person import Person, Role  # noqa: F401
from docshare.models.documents import (  # noqa: F401
    Comment,
    CommentReport,
    Document,
    DocumentReport,
    Notification,
    NotificationType,
    Rating,
    ReportTarget,
    ReviewAction,
    ReviewStatus,
    Subject,
)
