from fastapi import Response


def preflight_response(methods: str) -> Response:
    """204 answer for bare OPTIONS calls from the mobile client (no Origin header)."""
    return Response(
        status_code=204,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": methods,
            "Access-Control-Allow-Headers": "Content-Type, Authorization, X-App-Check",
        },
    )
