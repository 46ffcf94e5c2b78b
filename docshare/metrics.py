from prometheus_client import Counter

REVIEW_DECISIONS = Counter(
    "docshare_review_decisions_total",
    "Moderation decisions applied to submitted documents",
    ["action"],
)
REPORTS_FILED = Counter(
    "docshare_reports_filed_total",
    "Abuse reports accepted by the report ledger",
    ["target"],
)
DOCUMENTS_DELETED = Counter(
    "docshare_documents_deleted_total",
    "Documents removed together with their dependents",
    ["reason"],
)
