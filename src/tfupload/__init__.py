"""tfupload: build Android apps with Gradle and upload them to TestFairy."""

__version__ = "0.1.0"

TOOL_NAME = "TestFairy Gradle Upload CLI"
