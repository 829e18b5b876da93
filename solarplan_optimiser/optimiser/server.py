"""
Solar charge planner HTTP API Server.

Provides REST API endpoints for requesting a day's battery charge schedule
from half-hourly solar, load and price forecasts.
"""
import logging
import os
from datetime import date

from flask import Flask, jsonify, request
from flask_cors import CORS

from .engine import ChargePlanner, OptimiserKind, PlannerConfig
from .errors import ForecastError
from .forecasts import (
    AveragePriceCurve,
    FallbackPriceSupplier,
    StaticLoadForecast,
    StaticPriceSupplier,
    StaticSolarForecast,
)
from .segments import SEGMENTS_PER_DAY
from .units import Kwh

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "info").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)
CORS(app)


def _optional_int(name: str) -> int | None:
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else None


# Configuration from environment
DEFAULT_OPTIMISER = os.environ.get("DEFAULT_OPTIMISER", "graph")
GRAPH_BATTERY_STEP_KWH = float(os.environ.get("GRAPH_BATTERY_STEP_KWH", 0.1))
DP_ROUNDING_KWH = float(os.environ.get("DP_ROUNDING_KWH", 0.5))
GA_GENERATIONS = int(os.environ.get("GA_GENERATIONS", 200))
GA_SEED = _optional_int("GA_SEED")


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "version": "1.0.0",
    })


@app.route("/status", methods=["GET"])
def status():
    """Get planner status and configuration."""
    return jsonify({
        "success": True,
        "optimisers": [kind.value for kind in OptimiserKind],
        "config": {
            "default_optimiser": DEFAULT_OPTIMISER,
            "graph_battery_step_kwh": GRAPH_BATTERY_STEP_KWH,
            "dp_rounding_kwh": DP_ROUNDING_KWH,
            "ga_generations": GA_GENERATIONS,
            "segments_per_day": SEGMENTS_PER_DAY,
        },
    })


@app.route("/plan", methods=["POST"])
def plan():
    """
    Create a charge plan for one day.

    Request body:
    {
        "date": "2025-01-15",                 # Optional, defaults to today
        "solar_forecast": [0, 0, ..., 1.2],   # kWh for each of the 48 half-hours
        "load_forecast": [0.4, 0.3, ...],     # kWh for each of the 48 half-hours
        "prices": [0.15, null, ...],          # GBP/kWh, null = unknown
        "average_prices": [0.2, ...],         # Optional curve used for null prices
        "battery": {
            "capacity_kwh": 10,
            "grid_charge_per_segment_kwh": 2,
            "start_charge_kwh": 3.5,
            "charge_efficiency": 1.0
        },
        "optimiser": "graph"                  # graph|dynamic|genetic|do_nothing
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "error": "No data provided"}), 400

    try:
        planner, day, start_charge = _build_planner(data)
    except (ValueError, TypeError, ForecastError) as e:
        return jsonify({"success": False, "error": str(e)}), 400

    logger.info(f"Running {planner.optimiser.name} planner for {day}, start charge {start_charge}")

    try:
        result = planner.plan(day, start_charge)
    except Exception as e:
        logger.exception("Planning error")
        return jsonify({"success": False, "error": str(e)}), 500

    if not result.success:
        logger.warning(f"Planning failed: {result.status}")
        return jsonify({
            "success": False,
            "error": result.status,
        }), 400 if result.input_error else 500

    logger.info(f"Planning succeeded: cost=£{result.total_cost:.2f}, "
                f"baseline=£{result.baseline_cost:.2f}, grid={result.total_grid_kwh:.1f}kWh")
    return jsonify(result.to_dict())


def _build_planner(data: dict) -> tuple[ChargePlanner, date, Kwh]:
    """Translate a request body into a planner, a date and a starting charge."""
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    for name in ("solar_forecast", "load_forecast", "prices"):
        if not data.get(name):
            raise ValueError(f"{name} required")

    battery = data.get("battery", {})
    if not isinstance(battery, dict):
        raise ValueError("battery must be an object")
    optimiser_name = data.get("optimiser", DEFAULT_OPTIMISER)
    try:
        optimiser = OptimiserKind(optimiser_name)
    except ValueError:
        raise ValueError(f"Unknown optimiser '{optimiser_name}'") from None

    config = PlannerConfig(
        battery_capacity_kwh=float(battery.get("capacity_kwh", 10.0)),
        grid_charge_per_segment_kwh=float(battery.get("grid_charge_per_segment_kwh", 2.0)),
        charge_efficiency=float(battery.get("charge_efficiency", 1.0)),
        optimiser=optimiser,
        graph_battery_step_kwh=GRAPH_BATTERY_STEP_KWH,
        dp_rounding_kwh=DP_ROUNDING_KWH,
        ga_generations=GA_GENERATIONS,
        ga_seed=GA_SEED,
    )

    price_supplier = StaticPriceSupplier(
        [None if p is None else float(p) for p in data["prices"]]
    )
    if data.get("average_prices"):
        curve = AveragePriceCurve.flat([float(p) for p in data["average_prices"]])
        price_supplier = FallbackPriceSupplier(price_supplier, curve)

    planner = ChargePlanner(
        solar_forecaster=StaticSolarForecast([float(v) for v in data["solar_forecast"]]),
        load_forecaster=StaticLoadForecast([float(v) for v in data["load_forecast"]]),
        price_supplier=price_supplier,
        config=config,
    )

    day = date.fromisoformat(data["date"]) if data.get("date") else date.today()
    start_charge = Kwh(float(battery.get("start_charge_kwh", 0.0)))
    return planner, day, start_charge


def main():
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 5000))
    logger.info("Starting solar charge planner server...")
    app.run(host=host, port=port, debug=False)


if __name__ == "__main__":
    main()
