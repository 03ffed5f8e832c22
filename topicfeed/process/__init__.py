"""Pure, in-memory pipeline stages: keyword filtering, dedup, topic mapping."""
