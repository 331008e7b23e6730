from __future__ import annotations

from typing import Optional
import unicodedata


def normalize_linkedin_profile_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        from urllib.parse import urlparse, unquote
        text = str(url).strip()
        if not text.lower().startswith(("http://", "https://")):
            text = f"https://{text}"
        u = urlparse(text)
        host = (u.netloc or '').lower().replace('www.', '')
        # Country subdomains (de.linkedin.com, uk.linkedin.com) point to the same profile
        if host.endswith('.linkedin.com'):
            host = 'linkedin.com'
        path = (u.path or '').rstrip('/')
        if not host:
            return None
        if host != 'linkedin.com' or not path.startswith('/in/'):
            return None
        # Keep only /in/{slug} and drop trailing locale/segments (e.g., /de, /en)
        parts = [p for p in path.split('/') if p]
        if len(parts) >= 2 and parts[0] == 'in':
            slug = unquote(parts[1])
            slug = unicodedata.normalize('NFKC', slug).strip().lower()
            # Remove invisible characters occasionally present
            slug = slug.replace('\u200b', '').replace('\u200c', '').replace('\u200d', '')
            return f"https://linkedin.com/in/{slug}"
        return f"https://linkedin.com{path}"
    except ValueError:
        return None


def canonical_profile_url(url: Optional[str]) -> Optional[str]:
    """Canonical LinkedIn member URL when recognizable, else the trimmed raw value."""
    if not url or not str(url).strip():
        return None
    return normalize_linkedin_profile_url(url) or str(url).strip()
