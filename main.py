from flask import Flask, request, jsonify
from flask_cors import CORS
from royalty_engine import ENGINE_VERSION, BatchStatementRunner, CalculationError, StatementProcessor
import os
import logging

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes
CORS(app)

# Initialize the statement processor (stateless, shared across requests)
processor = StatementProcessor()
batch_max_workers = os.environ.get("BATCH_MAX_WORKERS")
batch_runner = BatchStatementRunner(
    processor=processor,
    max_workers=int(batch_max_workers) if batch_max_workers else None,
)


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Royalty Statement Engine API",
        "version": ENGINE_VERSION,
        "endpoints": {
            "calculate_statement": "/calculate_statement [POST]",
            "calculate_statements": "/calculate_statements [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/calculate_statement", methods=["POST"])
def calculate_statement():
    """
    Calculate one contract's royalty statement for one period
    """
    try:
        # Get input data
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        if not isinstance(input_data, dict):
            return jsonify({
                "error": "Request body must be a JSON object",
                "status": "validation_failed"
            }), 400

        # Log request
        contract = input_data.get("contract")
        contract_id = contract.get("contract_id", "Unknown") if isinstance(contract, dict) else "Unknown"
        period = f"{input_data.get('period_start')}..{input_data.get('period_end')}"
        logger.info(f"Calculating statement: contract={contract_id} period={period}")

        # Process through engine
        result = processor.calculate_from_dict(input_data)

        logger.info(f"Statement calculated: contract={contract_id} period={period}")

        return jsonify(result), 200

    except CalculationError as e:
        # Typed errors from engine
        logger.error(f"{e.error_type}: {e.message} {e.context}")
        return jsonify({**e.to_dict(), "status": "validation_failed"}), 400

    except ValueError as e:
        # Malformed JSON or request values
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/calculate_statements", methods=["POST"])
def calculate_statements():
    """
    Calculate statements for many contracts/periods in one call
    """
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        if not isinstance(input_data, dict):
            return jsonify({
                "error": "Request body must be a JSON object",
                "status": "validation_failed"
            }), 400

        logger.info("Calculating statement batch")

        result = batch_runner.run_from_dict(input_data)

        return jsonify(result), 200

    except CalculationError as e:
        logger.error(f"{e.error_type}: {e.message} {e.context}")
        return jsonify({**e.to_dict(), "status": "validation_failed"}), 400

    except ValueError as e:
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except Exception as e:
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
