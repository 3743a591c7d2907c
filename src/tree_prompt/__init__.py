"""tree_prompt: flatten a directory tree into delimited, chunked LLM prompts."""

__version__ = "0.1.0"
