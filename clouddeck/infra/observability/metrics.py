from prometheus_client import Counter, Histogram

# Low-cardinality labels only: never the object key or bucket.
TRANSFERS = Counter(
    "clouddeck_transfers_total",
    "Uploads that reached a terminal outcome",
    ["mode", "outcome"],
)

TRANSFER_RETRIES = Counter(
    "clouddeck_transfer_retries_total",
    "Whole-transfer retries scheduled, by failure kind",
    ["kind"],
)

PARTS_UPLOADED = Counter(
    "clouddeck_parts_uploaded_total",
    "Multipart parts uploaded successfully",
)

TRANSFER_BYTES = Counter(
    "clouddeck_transfer_bytes_total",
    "Payload bytes of successfully committed uploads",
)

TRANSFER_DURATION = Histogram(
    "clouddeck_transfer_duration_seconds",
    "Wall-clock duration of uploads, retries included",
    ["mode"],
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300, 600, 1800),
)
