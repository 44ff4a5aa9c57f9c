"""AWS Lambda entry point for edge deployments.

Mangum adapts API Gateway / Lambda Function URL events to ASGI. Lifespan
is off, so the window store and Discord client are created lazily on the
first request and reused while the execution environment stays warm.
"""

from mangum import Mangum

from src.main import app

handler = Mangum(app, lifespan="off")
