"""Application services: batched URL resolution and download orchestration."""
