"""Purchase settlement."""
