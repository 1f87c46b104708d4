import json
import re
from django.utils.deprecation import MiddlewareMixin
from django.conf import settings

_CTRL_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
_INVISIBLE_RE = re.compile(r'[\u200B-\u200F\u202A-\u202E\u2060-\u206F\uFEFF]')

# Callback payloads from the workflow engine can carry whole proposal drafts
_SANITIZE_MAX_BYTES = 5 * 1024 * 1024


def _clean_value(v):
    if isinstance(v, str):
        s = v.replace('\r\n', '\n').replace('\r', '\n')
        s = _CTRL_RE.sub('', s)
        s = _INVISIBLE_RE.sub('', s)
        return s
    if isinstance(v, list):
        return [_clean_value(x) for x in v]
    if isinstance(v, dict):
        return {k: _clean_value(x) for k, x in v.items()}
    return v


class SanitizeJsonBodyMiddleware(MiddlewareMixin):
    """Strip control/invisible characters from string values of JSON request bodies.

    Applies to user edits (grant notes, narratives, proposal sections) and to
    engine callbacks alike. Bodies over the sanitize cap pass through untouched.
    """

    def process_request(self, request):
        if not (request.content_type and request.content_type.startswith('application/json')):
            return None
        try:
            body = request.body
            if not body or len(body) > _SANITIZE_MAX_BYTES:
                return None
            data = json.loads(body.decode('utf-8'))
        except (ValueError, UnicodeDecodeError):
            # Malformed JSON is reported by the view's parser
            return None
        cleaned = _clean_value(data)
        if cleaned != data:
            request._body = json.dumps(cleaned).encode('utf-8')
        return None


class SecurityHeadersMiddleware(MiddlewareMixin):
    """Add strict security headers in production.

    Event streams (/api/realtime) additionally get proxy-buffering disabled so
    change notifications are flushed as soon as they are written.
    """

    def process_response(self, request, response):
        if (response.get('Content-Type') or '').startswith('text/event-stream'):
            response.setdefault('Cache-Control', 'no-cache')
            response.setdefault('X-Accel-Buffering', 'no')
        if settings.DEBUG:
            return response
        extra_script = ' ' + ' '.join(settings.CSP_SCRIPT_SRC) if getattr(settings, 'CSP_SCRIPT_SRC', None) else ''
        extra_style = ' ' + ' '.join(settings.CSP_STYLE_SRC) if getattr(settings, 'CSP_STYLE_SRC', None) else ''
        extra_connect = ' ' + ' '.join(settings.CSP_CONNECT_SRC) if getattr(settings, 'CSP_CONNECT_SRC', None) else ''
        allow_inline = getattr(settings, 'CSP_ALLOW_INLINE_STYLES', False)
        style_src = "style-src 'self'" + (" 'unsafe-inline'" if allow_inline else '') + (extra_style or '')
        csp = (
            "default-src 'self'; "
            f"script-src 'self'{extra_script}; "
            f'{style_src}; '
            "img-src 'self' data:; "
            "font-src 'self' data:; "
            f"connect-src 'self'{extra_connect}; "
            "frame-ancestors 'none'; "
            "base-uri 'self'; "
            "form-action 'self'"
        )
        response.setdefault('Content-Security-Policy', csp)
        response.setdefault('X-Content-Type-Options', 'nosniff')
        response.setdefault('X-Frame-Options', 'DENY')
        response.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
        response.setdefault('Permissions-Policy', 'geolocation=(), microphone=(), camera=()')
        response.setdefault('Cross-Origin-Opener-Policy', 'same-origin')
        return response
