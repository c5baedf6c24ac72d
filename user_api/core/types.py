"""Type aliases for dynamic data structures throughout the application.

This module centralizes type definitions for data that cannot be statically
typed, such as API Gateway proxy events and the dictionaries the Lambda
runtime expects back, giving them clear semantic names.

All types defined here should be JSON-serializable to support logging
and gateway responses.
"""

from typing import Any

# API Gateway proxy integration request event
# https://docs.aws.amazon.com/apigateway/latest/developerguide/set-up-lambda-proxy-integrations.html
type GatewayEvent = dict[str, Any]

# API Gateway proxy integration response: statusCode, headers, body
type GatewayResponse = dict[str, Any]

# SQL parameters as bound by the data access layer
type SqlParams = dict[str, Any]
