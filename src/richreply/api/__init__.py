"""HTTP surface for the RichReply pipeline (FastAPI)."""
