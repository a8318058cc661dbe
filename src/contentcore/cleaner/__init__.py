from .content_cleaner import ContentCleaner, is_embed_host, is_junk_class, sanitize_html

__all__ = ["ContentCleaner", "is_embed_host", "is_junk_class", "sanitize_html"]
