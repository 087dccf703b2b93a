"""
HTTP API server for the work distributor.

This module provides a Flask-based REST API exposing the two
administrative operations: automatic and manual assignment.
"""

from flask import Flask, request, jsonify
from datetime import datetime, timezone
from typing import Dict, Any, Optional
import logging

from . import __version__
from .errors import (
    DistributionError, InvalidWorkerTypeError, ItemNotFoundError,
    NoEligibleWorkersError, WorkerNotFoundError, CommitConflictError
)
from .service import AssignmentService
from .store import AssignmentStore
from .types import (
    CAPACITY_WEIGHTS, BackoffConfig, BackoffStrategy, DistributionPolicy,
    RoundingStrategy, WorkItem, Worker
)


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


ERROR_STATUS = {
    NoEligibleWorkersError: 400,
    InvalidWorkerTypeError: 400,
    ItemNotFoundError: 404,
    WorkerNotFoundError: 404,
    CommitConflictError: 409,
}


def _error(message: str, code: str, status: int):
    return jsonify({'error': message, 'code': code}), status


def _records(data, key: str):
    """Pull a list of record objects out of a request body."""
    if not data:
        return None, _error('Empty request body', 'invalid_request', 400)
    records = data.get(key) if isinstance(data, dict) else None
    if not isinstance(records, list) or not records:
        return None, _error(f'Please provide a non-empty {key} array', 'invalid_request', 400)
    if not all(isinstance(record, dict) for record in records):
        return None, _error(f'Every entry in {key} must be an object', 'invalid_request', 400)
    return records, None


def create_app(
    config: Optional[Dict[str, Any]] = None,
    store: Optional[AssignmentStore] = None
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary
        store: Store to serve; a new empty store if omitted

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)

    # Default configuration
    app.config.update({
        'TESTING': False,
        'ROUNDING_STRATEGY': 'nearest',
        'MAX_COMMIT_ATTEMPTS': 3,
        'BACKOFF_STRATEGY': 'exponential',
        'INITIAL_DELAY_MS': 50,
        'MAX_DELAY_MS': 1000,
    })

    # DISTRIBUTOR_MAX_COMMIT_ATTEMPTS=5 etc.
    app.config.from_prefixed_env('DISTRIBUTOR')

    # Apply custom config
    if config:
        app.config.update(config)

    backoff = BackoffConfig(
        strategy=BackoffStrategy.from_value(app.config['BACKOFF_STRATEGY']),
        initial_delay_ms=int(app.config['INITIAL_DELAY_MS']),
        max_delay_ms=int(app.config['MAX_DELAY_MS'])
    )

    policy = DistributionPolicy(
        rounding=RoundingStrategy.from_value(app.config['ROUNDING_STRATEGY']),
        backoff=backoff,
        max_commit_attempts=int(app.config['MAX_COMMIT_ATTEMPTS'])
    )

    store = store if store is not None else AssignmentStore()
    service = AssignmentService(store, policy)
    app.extensions['distributor'] = service

    @app.route('/health', methods=['GET'])
    def health():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'service': 'work-distributor',
            'version': __version__,
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    @app.route('/policy', methods=['GET'])
    def get_policy():
        """Get current distribution policy."""
        return jsonify({
            'capacity_weights': {cls.value: w for cls, w in CAPACITY_WEIGHTS.items()},
            'rounding': policy.rounding.value,
            'backoff': {
                'strategy': policy.backoff.strategy.value,
                'initial_delay_ms': policy.backoff.initial_delay_ms,
                'max_delay_ms': policy.backoff.max_delay_ms
            },
            'max_commit_attempts': policy.max_commit_attempts
        })

    @app.route('/workers', methods=['GET'])
    def list_workers():
        """List workers with their running assignment counts."""
        workers = store.list_workers()
        return jsonify({
            'count': len(workers),
            'data': [w.to_dict() for w in workers]
        })

    @app.route('/workers', methods=['POST'])
    def add_workers():
        """
        Register workers.

        Request body:
        {
            "workers": [
                {
                    "worker_id": "worker-1",
                    "user_type": "TeleCaller",
                    "capacity_class": "experienced",
                    "assigned_count": 0
                }
            ]
        }
        """
        records, error = _records(request.get_json(silent=True), 'workers')
        if error:
            return error

        try:
            workers = [Worker.from_dict(record) for record in records]
            store.add_workers(workers)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Invalid worker data: {e}")
            return _error(f'Invalid worker data: {e}', 'invalid_request', 400)

        logger.info(f"Registered {len(workers)} workers")
        return jsonify({'count': len(workers), 'data': [w.to_dict() for w in workers]}), 201

    @app.route('/workers/<worker_id>/items', methods=['GET'])
    def list_worker_items(worker_id):
        """List items currently assigned to one worker."""
        if store.get_worker(worker_id) is None:
            raise WorkerNotFoundError(f"Worker not found: {worker_id}")
        items = store.list_items(assigned_to=worker_id)
        return jsonify({
            'count': len(items),
            'data': [i.to_dict() for i in items]
        })

    @app.route('/items', methods=['POST'])
    def add_items():
        """
        Register work items.

        Request body:
        {"items": [{"item_id": "item-1"}, {"item_id": "item-2", "assigned_to": "worker-1"}]}
        """
        records, error = _records(request.get_json(silent=True), 'items')
        if error:
            return error

        try:
            items = [WorkItem.from_dict(record) for record in records]
            store.add_items(items)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Invalid item data: {e}")
            return _error(f'Invalid item data: {e}', 'invalid_request', 400)

        logger.info(f"Registered {len(items)} items")
        return jsonify({'count': len(items), 'data': [i.to_dict() for i in items]}), 201

    @app.route('/assign/automatic', methods=['POST'])
    def assign_automatic():
        """
        Distribute all unassigned items across telecallers.

        Response:
        {
            "success": true,
            "assigned_count": 10,
            "message": "10 items assigned automatically",
            "data": {"worker-1": ["item-1", ...], ...},
            "metrics": {...}
        }
        """
        outcome = service.assign_automatically()
        return jsonify(outcome.to_dict()), 200

    @app.route('/assign/manual', methods=['POST'])
    def assign_manual():
        """
        Assign chosen items to one telecaller.

        Request body:
        {"item_id": "item-1", "worker_id": "worker-1"}
        or
        {"item_ids": ["item-1", "item-2"], "worker_id": "worker-1"}
        """
        data = request.get_json(silent=True)

        if not data:
            return _error('Empty request body', 'invalid_request', 400)
        if not isinstance(data, dict):
            return _error('Request body must be a JSON object', 'invalid_request', 400)

        worker_id = data.get('worker_id')
        item_ids = data.get('item_ids')
        if item_ids is None and data.get('item_id') is not None:
            item_ids = [data['item_id']]

        if not worker_id or not isinstance(item_ids, list) or not item_ids:
            return _error(
                'Please provide item_id or a non-empty item_ids array, and worker_id',
                'invalid_request', 400
            )

        outcome = service.assign_manually([str(i) for i in item_ids], str(worker_id))
        return jsonify(outcome.to_dict()), 200

    @app.errorhandler(DistributionError)
    def distribution_error(error):
        """Map distribution errors to status codes."""
        status = ERROR_STATUS.get(type(error), 400)
        logger.warning(f"{error.code}: {error}")
        return _error(str(error), error.code, status)

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return _error('Not found', 'not_found', 404)

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal server error: {error}", exc_info=True)
        return _error('Internal server error', 'internal_error', 500)

    return app


def run_server(host: str = '0.0.0.0', port: int = 8001, debug: bool = False):
    """
    Run the distributor HTTP server.

    Args:
        host: Host to bind to
        port: Port to listen on
        debug: Enable debug mode
    """
    logger.info("=" * 50)
    logger.info("  Work Distributor Server (Python)")
    logger.info("=" * 50)
    logger.info("")
    logger.info(f"Starting server on {host}:{port}")
    logger.info("")
    logger.info("Endpoints:")
    logger.info(f"  POST {host}:{port}/assign/automatic - Distribute unassigned items")
    logger.info(f"  POST {host}:{port}/assign/manual    - Assign items to a telecaller")
    logger.info(f"  POST {host}:{port}/workers          - Register workers")
    logger.info(f"  POST {host}:{port}/items            - Register items")
    logger.info(f"  GET  {host}:{port}/workers          - List workers")
    logger.info(f"  GET  {host}:{port}/workers/<id>/items - Items assigned to a worker")
    logger.info(f"  GET  {host}:{port}/health           - Health check")
    logger.info(f"  GET  {host}:{port}/policy           - Get policy")
    logger.info("")

    app = create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == '__main__':
    run_server()
