"""Tests for error types and codes."""

from diskfoundry.errors import (
    ConfigurationError,
    ConfigurationNotFound,
    CopyFailure,
    DeleteFailure,
    FilesystemError,
    FilesystemOperationError,
    InvalidDiskConfiguration,
    ListingFailure,
    MetadataUnavailable,
    SymbolicLinkEncountered,
    UnsupportedOperation,
    WriteFailure,
)


class TestOperationErrors:
    """Tests for the throw-policy error family."""

    def test_at_builds_message_and_details(self):
        error = WriteFailure.at("a.txt", cause=OSError("disk full"))

        assert error.message == "Unable to write file at location: a.txt. disk full"
        assert error.path == "a.txt"
        assert error.details["operation"] == "write file"
        assert error.details["original_error"] == "disk full"
        assert error.details["error_type"] == "OSError"
        assert str(error).startswith("[STG002] Unable to write file")

    def test_at_prefers_reason_over_cause(self):
        error = WriteFailure.at("a.txt", cause=OSError("x"), reason="This is a read-only adapter.")
        assert error.message.endswith("This is a read-only adapter.")

    def test_between_records_destination(self):
        error = CopyFailure.between("a.txt", "b.txt", cause=FileNotFoundError("a.txt"))
        assert error.message.startswith("Unable to copy file from a.txt to b.txt")
        assert error.details["destination"] == "b.txt"

    def test_delete_failure_lists_failed_paths(self):
        single = DeleteFailure.at("a.txt")
        assert single.failed_paths == ["a.txt"]

        aggregated = DeleteFailure("Unable to delete 2 files", path="a.txt", failed_paths=["a.txt", "b.txt"])
        assert aggregated.failed_paths == ["a.txt", "b.txt"]
        assert aggregated.details["failed_paths"] == "a.txt, b.txt"

    def test_metadata_unavailable_names_attribute(self):
        error = MetadataUnavailable.for_attribute("a.bin", "mime_type", reason="File does not exist.")
        assert error.message == "Unable to retrieve the mime_type for file at location: a.bin. File does not exist."
        assert error.details["attribute"] == "mime_type"

    def test_symbolic_link_is_a_listing_failure(self):
        assert issubclass(SymbolicLinkEncountered, ListingFailure)
        assert issubclass(ListingFailure, FilesystemOperationError)

    def test_to_dict(self):
        payload = WriteFailure.at("a.txt").to_dict()
        assert payload["error_type"] == "WriteFailure"
        assert payload["error_code"] == "STG002"
        assert payload["details"]["path"] == "a.txt"


class TestMisconfigurationErrors:
    """Misconfiguration errors sit outside the operation family."""

    def test_hierarchy(self):
        assert issubclass(ConfigurationNotFound, ConfigurationError)
        assert issubclass(InvalidDiskConfiguration, ConfigurationError)
        assert not issubclass(ConfigurationError, FilesystemOperationError)
        assert not issubclass(UnsupportedOperation, FilesystemOperationError)
        assert issubclass(UnsupportedOperation, FilesystemError)

    def test_invalid_configuration_lists_issues(self):
        error = InvalidDiskConfiguration(
            "Invalid configuration for disk [media]",
            disk="media",
            kind="s3",
            issues=["bucket: Field required"],
        )
        assert "Issues found:" in error.message
        assert "  - bucket: Field required" in error.message
        assert error.details == {"disk": "media", "kind": "s3"}
        assert error.issues == ["bucket: Field required"]

    def test_configuration_not_found(self):
        error = ConfigurationNotFound("Disk [archive] not found.", disk="archive")
        assert error.disk == "archive"
        assert error.error_code == "CFG001"

    def test_unsupported_operation_details(self):
        error = UnsupportedOperation("no urls", operation="url", disk="scratch")
        assert error.operation == "url"
        assert error.details == {"operation": "url", "disk": "scratch"}
