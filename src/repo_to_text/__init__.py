"""repo_to_text: turn a hosted repository archive into a text export."""

__version__ = "0.1.0"
