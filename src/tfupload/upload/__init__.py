"""Upload pipeline: task discovery, Gradle runs, URL scraping, and the user workflow."""

from tfupload.upload.orchestrator import BuildOrchestrator, parse_task_names
from tfupload.upload.scraper import extract_result_url
from tfupload.upload.workflow import UploadWorkflow

__all__ = [
    "BuildOrchestrator",
    "UploadWorkflow",
    "extract_result_url",
    "parse_task_names",
]
