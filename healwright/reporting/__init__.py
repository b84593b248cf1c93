"""Report attachments, environment metadata and defect age."""
