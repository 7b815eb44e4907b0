import re

def sanitize_string(v: str) -> str:
    if not isinstance(v, str):
        return v
    # 1. Strip HTML tags
    v = re.sub(r'<[^>]*>', '', v)
    # 2. Collapse runs of whitespace and trim
    return re.sub(r'\s+', ' ', v).strip()
