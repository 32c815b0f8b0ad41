"""
AWS Lambda handler for the Royalty Statement Engine API.

This is the production entry point for AWS Lambda deployments.
For local development, use main.py (Flask app) instead.
"""

import base64
import json
import logging
import os

from royalty_engine import ENGINE_VERSION, BatchStatementRunner, CalculationError, StatementProcessor

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())

# Environment (dev, staging, prod)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

# Initialize processor (reused across warm invocations)
processor = StatementProcessor()
batch_runner = BatchStatementRunner(processor=processor)

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /calculate_statement
    - POST /calculate_statements
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/calculate_statement" and http_method == "POST":
        return handle_calculate(event, processor.calculate_from_dict)
    elif path == "/calculate_statements" and http_method == "POST":
        return handle_calculate(event, batch_runner.run_from_dict)
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    else:
        return _response(404, {"error": "Not found", "path": path})


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": ENVIRONMENT})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "Royalty Statement Engine API",
            "version": ENGINE_VERSION,
            "environment": ENVIRONMENT,
            "runtime": "AWS Lambda",
            "endpoints": {
                "calculate_statement": "/calculate_statement [POST]",
                "calculate_statements": "/calculate_statements [POST]",
                "health": "/health [GET]",
            },
        },
    )


def handle_calculate(event, calculate):
    """Run a statement (or batch) calculation on the request body."""
    try:
        # Parse request body
        body = event.get("body", "")
        if isinstance(body, str):
            if not body:
                return _response(400, {"error": "No input data provided", "status": "failed"})
            # Handle base64 encoded body (API Gateway)
            if event.get("isBase64Encoded"):
                body = base64.b64decode(body).decode("utf-8")
            input_data = json.loads(body)
        else:
            input_data = body

        if not isinstance(input_data, dict):
            return _response(400, {"error": "Request body must be a JSON object", "status": "validation_failed"})

        contract = input_data.get("contract")
        contract_id = contract.get("contract_id", "unknown") if isinstance(contract, dict) else "batch"
        logger.info(f"Calculating statement: contract={contract_id}")

        result = calculate(input_data)

        logger.info(f"Statement calculated: contract={contract_id}")

        return _response(200, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except CalculationError as e:
        logger.error(f"{e.error_type}: {e.message} {e.context}")
        return _response(400, {**e.to_dict(), "status": "validation_failed"})

    except ValueError as e:
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except Exception as e:
        # Unexpected errors - log details but return generic message to avoid information disclosure
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})


def _response(status_code: int, payload: dict) -> dict:
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(payload)}
