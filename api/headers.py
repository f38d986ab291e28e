"""
Security headers added to every response.

Same defaults as helmet, minus Content-Security-Policy (the Swagger UI
at /docs/ loads inline scripts). Disable with SECURITY_HEADERS_ENABLED=false.
"""
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "X-XSS-Protection": "0",
}


def init_security_headers(app) -> None:
    if not app.config.get("SECURITY_HEADERS_ENABLED", True):
        return

    @app.after_request
    def add_security_headers(response):
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response
