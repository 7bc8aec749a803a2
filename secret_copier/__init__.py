"""secret_copier: copy Secrets labelled ``secret-copier`` into every namespace."""

__version__ = "0.1.0"
