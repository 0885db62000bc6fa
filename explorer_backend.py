"""
AFGScan Explorer API
Serverless-style JSON API proxying an EVM node and the NodeReal indexer
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Type

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
from flasgger import Swagger
from werkzeug.exceptions import HTTPException, MethodNotAllowed

from cache import MemoryCache
from config import Config, config
from data_service import ListingService, LookupService, StatsService, page_key_from_query
from errors import ExplorerError, UpstreamFailure
from evm_rpc_client import EvmRpcClient
from mappers import stats_from_aggregate, transaction_stats
from nodereal_client import NodeRealClient
from search_api import check_redirect, quick_search

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@dataclass
class ExplorerServices:
    """Per-application service container"""

    cfg: Type[Config]
    rpc: Optional[EvmRpcClient]
    indexer: Optional[NodeRealClient]
    cache: MemoryCache
    stats: StatsService
    listings: ListingService
    lookups: LookupService


def services() -> ExplorerServices:
    return current_app.extensions["afgscan"]


def _query_int(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


api = Blueprint("api_v2", __name__)


# ==================== BLOCK ENDPOINTS ====================

@api.route("/blocks", methods=["GET"])
def list_blocks_endpoint():
    """
    Get paginated blocks, newest first
    ---
    tags:
      - Blocks
    parameters:
      - name: block_number
        in: query
        type: integer
        required: false
        description: Exclusive upper bound; pass next_page_params.block_number here
      - name: items_count
        in: query
        type: integer
        default: 50
        description: Number of blocks to return (1-50)
    responses:
      200:
        description: Block page
        schema:
          type: object
          properties:
            items:
              type: array
              items:
                type: object
            next_page_params:
              type: object
              properties:
                block_number:
                  type: integer
                items_count:
                  type: integer
      502:
        description: Failed to fetch blocks
      503:
        description: RPC client not configured
    """
    start_height = _query_int("block_number")
    items_count = _query_int("items_count")
    try:
        page = services().listings.list_blocks(start_height, items_count)
    except UpstreamFailure as e:
        raise UpstreamFailure("Failed to fetch blocks") from e
    return jsonify(page)


@api.route("/blocks/<height_or_hash>", methods=["GET"])
def block_endpoint(height_or_hash):
    """
    Get a block by height or hash
    ---
    tags:
      - Blocks
    parameters:
      - name: height_or_hash
        in: path
        type: string
        required: true
    responses:
      200:
        description: Block record
      400:
        description: Invalid height or hash
      404:
        description: Block not found
      503:
        description: RPC client not configured
    """
    return jsonify(services().lookups.get_block(height_or_hash))


@api.route("/main-page/blocks", methods=["GET"])
def main_page_blocks_endpoint():
    """
    Latest blocks for the home page (at most 5)
    ---
    tags:
      - Blocks
    responses:
      200:
        description: Latest blocks
      502:
        description: Failed to fetch blocks
      503:
        description: RPC client not configured
    """
    try:
        blocks = services().listings.latest_blocks()
    except UpstreamFailure as e:
        raise UpstreamFailure("Failed to fetch blocks") from e
    return jsonify(blocks)


# ==================== TRANSACTION ENDPOINTS ====================

@api.route("/main-page/transactions", methods=["GET"])
def main_page_transactions_endpoint():
    """
    Transactions of the latest block for the home page (at most 5)
    ---
    tags:
      - Transactions
    responses:
      200:
        description: Latest transactions
      502:
        description: Failed to fetch transactions
      503:
        description: RPC client not configured
    """
    try:
        transactions = services().listings.latest_transactions()
    except UpstreamFailure as e:
        raise UpstreamFailure("Failed to fetch transactions") from e
    return jsonify(transactions)


@api.route("/transactions", methods=["GET"])
def list_transactions_endpoint():
    """
    Get AFG token transfers, newest first
    ---
    tags:
      - Transactions
    parameters:
      - name: next_page_params
        in: query
        type: string
        required: false
        description: URL-encoded JSON {"pageKey": ...} from the previous page
    responses:
      200:
        description: Transaction page
        schema:
          type: object
          properties:
            items:
              type: array
              items:
                type: object
            next_page_params:
              type: object
              properties:
                pageKey:
                  type: string
      500:
        description: Indexer not configured
      502:
        description: Indexer request failed
    """
    page_key = page_key_from_query(request.args.get("next_page_params"))
    return jsonify(services().listings.list_transactions(page_key))


@api.route("/transactions/stats", methods=["GET"])
def transaction_stats_endpoint():
    """
    Transaction counters for the last 24 hours
    ---
    tags:
      - Analytics
    responses:
      200:
        description: Transaction statistics
      500:
        description: Indexer not configured
      502:
        description: Indexer request failed (zeroed statistics in body)
    """
    try:
        count = services().stats.transactions_count_24h()
    except UpstreamFailure as e:
        logger.error(f"NodeReal stats fetch failed: {e}")
        return jsonify(transaction_stats(0)), 502
    return jsonify(transaction_stats(count))


@api.route("/transactions/<tx_hash>", methods=["GET"])
def transaction_endpoint(tx_hash):
    """
    Get a transaction by hash
    ---
    tags:
      - Transactions
    parameters:
      - name: tx_hash
        in: path
        type: string
        required: true
    responses:
      200:
        description: Transaction record
      400:
        description: Missing or invalid hash
      404:
        description: Transaction not found
      503:
        description: RPC client not configured
    """
    return jsonify(services().lookups.get_transaction(tx_hash))


@api.route("/transactions/<tx_hash>/afg-value", methods=["GET"])
def transaction_afg_value_endpoint(tx_hash):
    """
    AFG amount moved by a transaction, from its Transfer logs
    ---
    tags:
      - Transactions
    parameters:
      - name: tx_hash
        in: path
        type: string
        required: true
    responses:
      200:
        description: Decimal string, or null when the transaction moved no AFG
        schema:
          type: object
          properties:
            value:
              type: string
      400:
        description: Missing or invalid hash
      503:
        description: RPC client not configured
    """
    return jsonify({"value": services().lookups.get_token_transfer_value(tx_hash)})


# ==================== ADDRESS ENDPOINTS ====================

@api.route("/addresses/<address>", methods=["GET"])
def address_endpoint(address):
    """
    Get address balance and contract flag
    ---
    tags:
      - Accounts
    parameters:
      - name: address
        in: path
        type: string
        required: true
    responses:
      200:
        description: Address record
      400:
        description: Missing or invalid hash
      404:
        description: Address not found
      503:
        description: RPC client not configured
    """
    return jsonify(services().lookups.get_address(address))


# ==================== STATS & SEARCH ====================

@api.route("/stats", methods=["GET"])
def stats_endpoint():
    """
    Home page statistics (best effort, never fails)
    ---
    tags:
      - Analytics
    responses:
      200:
        description: Home statistics record
        schema:
          type: object
          properties:
            total_blocks:
              type: string
            total_transactions:
              type: string
            average_block_time:
              type: number
              description: Milliseconds between the two latest blocks
    """
    stats = services().stats.compute_home_stats()
    return jsonify(stats_from_aggregate(
        stats.total_blocks, stats.average_block_time_ms, stats.total_transactions
    ))


@api.route("/search/check-redirect", methods=["GET"])
def check_redirect_endpoint():
    """
    Classify a search query for direct navigation
    ---
    tags:
      - Search
    parameters:
      - name: q
        in: query
        type: string
    responses:
      200:
        description: Redirect decision
    """
    return jsonify(check_redirect(request.args.get("q", "")))


@api.route("/search/quick", methods=["GET"])
def quick_search_endpoint():
    """
    Quick search suggestions
    ---
    tags:
      - Search
    parameters:
      - name: q
        in: query
        type: string
    responses:
      200:
        description: Zero or one result item
    """
    return jsonify(quick_search(request.args.get("q", "")))


# ==================== ERROR HANDLERS ====================

def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ExplorerError)
    def handle_explorer_error(e: ExplorerError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(MethodNotAllowed)
    def handle_method_not_allowed(e: MethodNotAllowed):
        response = jsonify({"error": "Method not allowed"})
        response.status_code = 405
        response.headers["Allow"] = "GET"
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.exception(f"Unhandled error on {request.path}: {e}")
        return jsonify({"error": "Internal server error"}), 500


# ==================== SWAGGER CONFIGURATION ====================

swagger_config = {
    "headers": [],
    "specs": [
        {
            "endpoint": 'apispec',
            "route": '/apispec.json',
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs"
}

swagger_template = {
    "info": {
        "title": "AFGScan Explorer API",
        "description": "Blocks, transactions, addresses, search and statistics for the AFG token explorer",
        "version": API_VERSION,
    },
    "basePath": "/",
    "schemes": ["https", "http"],
    "tags": [
        {"name": "Health", "description": "Health check endpoints"},
        {"name": "Blocks", "description": "Block data endpoints"},
        {"name": "Transactions", "description": "Transaction endpoints"},
        {"name": "Accounts", "description": "Account/address endpoints"},
        {"name": "Analytics", "description": "Statistics endpoints"},
        {"name": "Search", "description": "Search endpoints"},
    ]
}


# ==================== APPLICATION FACTORY ====================

def create_app(
    cfg: Optional[Type[Config]] = None,
    rpc: Optional[EvmRpcClient] = None,
    indexer: Optional[NodeRealClient] = None,
    cache: Optional[MemoryCache] = None,
    clock: Callable[[], float] = time.time,
) -> Flask:
    """
    Build the explorer application

    Gateways not passed in are created from configuration; an empty endpoint
    leaves the gateway unconfigured.
    """
    cfg = cfg or config

    if rpc is None and cfg.rpc_configured():
        rpc = EvmRpcClient(cfg.NODE_RPC_URL, timeout=cfg.UPSTREAM_TIMEOUT)
    if indexer is None and cfg.indexer_configured():
        indexer = NodeRealClient(
            cfg.NODEREAL_BSC_RPC_URL,
            timeout=cfg.UPSTREAM_TIMEOUT,
            retry_count=cfg.INDEXER_RETRY_COUNT,
            default_decimals=cfg.AFG_DECIMALS,
        )
    if cache is None:
        cache = MemoryCache(clock=clock, single_flight=cfg.CACHE_SINGLE_FLIGHT)

    if rpc is None:
        logger.warning("NODE_RPC_URL not set; RPC-backed routes will answer 503")
    if indexer is None:
        logger.warning("NODEREAL_BSC_RPC_URL not set; using simulated transaction totals")

    app = Flask(__name__)
    CORS(app, origins=cfg.CORS_ORIGINS)
    Swagger(app, config=swagger_config, template=swagger_template)

    app.extensions["afgscan"] = ExplorerServices(
        cfg=cfg,
        rpc=rpc,
        indexer=indexer,
        cache=cache,
        stats=StatsService(rpc, indexer, cache, cfg, clock=clock),
        listings=ListingService(rpc, indexer, cache, cfg),
        lookups=LookupService(rpc, cfg),
    )

    app.register_blueprint(api, url_prefix=cfg.API_PREFIX)
    app.add_url_rule("/health", "health_check", health_check, methods=["GET"])
    app.add_url_rule("/", "explorer_info", explorer_info, methods=["GET"])
    _register_error_handlers(app)
    return app


# ==================== HEALTH CHECK ====================

def health_check():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: Health status
        schema:
          type: object
          properties:
            status:
              type: string
              description: Overall health status (healthy/degraded/unconfigured)
            node:
              type: object
              properties:
                reachable:
                  type: boolean
                latest_height:
                  type: integer
            indexer:
              type: object
              properties:
                configured:
                  type: boolean
            cache:
              type: object
            timestamp:
              type: number
    """
    svc = services()
    latest_height = None
    if svc.rpc is None:
        status = "unconfigured"
    else:
        try:
            latest_height = svc.rpc.get_latest_height()
            status = "healthy"
        except UpstreamFailure as e:
            logger.warning(f"RPC health degraded: {e}")
            status = "degraded"

    return jsonify({
        "status": status,
        "node": {
            "reachable": latest_height is not None,
            "latest_height": latest_height,
        },
        "indexer": {"configured": svc.indexer is not None},
        "cache": svc.cache.get_stats(),
        "timestamp": time.time()
    }), 200


# ==================== INFO ENDPOINT ====================

def explorer_info():
    """
    Explorer information
    ---
    tags:
      - Health
    responses:
      200:
        description: Explorer service information
    """
    svc = services()
    prefix = svc.cfg.API_PREFIX
    return jsonify({
        "name": "AFGScan Explorer API",
        "version": API_VERSION,
        "token_contract": svc.cfg.AFG_CONTRACT,
        "features": {
            "rpc": svc.rpc is not None,
            "indexer": svc.indexer is not None,
            "simulated_totals": svc.indexer is None,
        },
        "endpoints": {
            "blocks": f"{prefix}/blocks",
            "transactions": f"{prefix}/transactions",
            "addresses": f"{prefix}/addresses/<hash>",
            "stats": f"{prefix}/stats",
            "search": f"{prefix}/search/quick",
            "health": "/health",
            "swagger_docs": "/api/docs",
            "openapi_spec": "/apispec.json"
        },
        "timestamp": time.time()
    })


# WSGI entry point (gunicorn explorer_backend:app)
app = create_app()


if __name__ == "__main__":
    logger.info("Starting AFGScan Explorer API")
    logger.info(f"Node RPC URL: {config.NODE_RPC_URL or 'Not configured'}")
    logger.info(f"Indexer: {'configured' if config.indexer_configured() else 'Not configured'}")
    logger.info(f"Port: {config.EXPLORER_PORT}")

    app.run(
        host=config.EXPLORER_HOST,
        port=config.EXPLORER_PORT,
        debug=config.DEBUG,
        threaded=True
    )
