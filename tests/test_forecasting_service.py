import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from backend.app.core.errors import ConfigNotFound, InvalidWeights, NoHistoricalData, UnsupportedAlgorithm
from backend.app.feature_store.registry import HistoricalDataStore
from backend.app.ml.diagnostics import seasonal_analysis
from backend.app.ml.forecasting import RUNNERS
from backend.app.models.diagnostics import Season, TrendPeriod
from backend.app.models.forecast import ForecastAlgorithm, ForecastingConfig
from backend.app.services.store import forecast_key

from conftest import END_DATE, PLANT, PRODUCTS, make_records


ALUMINIUM = PRODUCTS[0]


@pytest.mark.asyncio
async def test_ensemble_forecast_for_aluminium_sheets(service) -> None:
    forecast = await service.get_forecast(ALUMINIUM, PLANT, "construction_ensemble")

    assert forecast.algorithm == ForecastAlgorithm.ensemble
    assert len(forecast.predicted_demand) == 120
    assert forecast.accuracy == 94.2
    assert forecast.end_date - forecast.start_date == timedelta(days=120)
    assert forecast.model_metrics.mape == 4.1
    assert forecast.seasonality is not None
    assert forecast.anomalies is not None
    assert forecast.external_factors is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("config_id", ["aluminium_config", "hardware_config", "construction_ensemble"])
async def test_every_catalog_config_honours_its_horizon(service, config_id: str) -> None:
    config = service.configs.get(config_id)
    forecast = await service.get_forecast(PRODUCTS[1], PLANT, config_id)

    assert len(forecast.predicted_demand) == config.horizon
    for lo, value, hi in zip(
        forecast.confidence_interval.lower,
        forecast.predicted_demand,
        forecast.confidence_interval.upper,
    ):
        assert 0 <= lo <= value <= hi
    assert all(r.confidence == config.accuracy for r in forecast.recommendations)


@pytest.mark.asyncio
async def test_default_config_is_used_when_none_given(service) -> None:
    forecast = await service.get_forecast(ALUMINIUM, PLANT)
    assert forecast.config_id == "construction_ensemble"


@pytest.mark.asyncio
async def test_unknown_config_is_rejected(service) -> None:
    with pytest.raises(ConfigNotFound):
        await service.get_forecast(ALUMINIUM, PLANT, "does_not_exist")


@pytest.mark.asyncio
async def test_unknown_plant_has_no_history(service) -> None:
    with pytest.raises(NoHistoricalData):
        await service.get_forecast(ALUMINIUM, "plant999", "aluminium_config")


@pytest.mark.asyncio
async def test_fresh_forecast_is_served_from_cache(service) -> None:
    first = await service.get_forecast(ALUMINIUM, PLANT, "aluminium_config")
    second = await service.get_forecast(ALUMINIUM, PLANT, "aluminium_config")

    assert second.id == first.id


@pytest.mark.asyncio
async def test_stale_forecast_is_regenerated(service) -> None:
    first = await service.get_forecast(ALUMINIUM, PLANT, "aluminium_config")
    first.last_updated = datetime.now(timezone.utc) - timedelta(hours=25)

    second = await service.get_forecast(ALUMINIUM, PLANT, "aluminium_config")

    assert second.id != first.id
    assert service.cache.get(forecast_key(ALUMINIUM, PLANT, "aluminium_config")) is second


@pytest.mark.asyncio
async def test_generate_always_builds_a_new_forecast(service) -> None:
    first = await service.get_forecast(ALUMINIUM, PLANT, "hardware_config")
    regenerated = await service.generate_forecast(ALUMINIUM, PLANT, "hardware_config")

    assert regenerated.id != first.id


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_generation(service, monkeypatch) -> None:
    calls = []
    real_generate = service._generate

    async def counting_generate(product_id, plant_id, config_id):
        calls.append(config_id)
        await asyncio.sleep(0.01)
        return await real_generate(product_id, plant_id, config_id)

    monkeypatch.setattr(service, "_generate", counting_generate)

    first, second = await asyncio.gather(
        service.get_forecast(ALUMINIUM, PLANT, "construction_ensemble"),
        service.get_forecast(ALUMINIUM, PLANT, "construction_ensemble"),
    )

    assert first is second
    assert calls == ["construction_ensemble"]
    assert service._in_flight == {}


@pytest.mark.asyncio
async def test_unsupported_algorithm_in_config(service) -> None:
    service.configs.upsert(ForecastingConfig(id="transformer_config", algorithm="transformer", horizon=10))

    with pytest.raises(UnsupportedAlgorithm):
        await service.get_forecast(ALUMINIUM, PLANT, "transformer_config")


@pytest.mark.asyncio
async def test_invalid_weights_leave_cache_untouched(service) -> None:
    good = await service.get_forecast(ALUMINIUM, PLANT, "construction_ensemble")
    service.configs.upsert(
        ForecastingConfig(
            id="bad_ensemble",
            algorithm="ensemble",
            parameters={"models": ["lstm", "arima", "prophet"], "weights": [0.6, 0.6, 0.6]},
            horizon=30,
        )
    )

    with pytest.raises(InvalidWeights):
        await service.get_forecast(ALUMINIUM, PLANT, "bad_ensemble")

    assert list(service.cache.forecasts) == [forecast_key(ALUMINIUM, PLANT, "construction_ensemble")]
    assert service.cache.get(forecast_key(ALUMINIUM, PLANT, "construction_ensemble")) is good


@pytest.mark.asyncio
async def test_config_update_invalidates_cached_forecasts(service) -> None:
    first = await service.get_forecast(ALUMINIUM, PLANT, "aluminium_config")
    config = service.configs.get("aluminium_config")

    await service.update_forecasting_config(config.model_copy(update={"horizon": 30}))
    second = await service.get_forecast(ALUMINIUM, PLANT, "aluminium_config")

    assert second.id != first.id
    assert len(second.predicted_demand) == 30


@pytest.mark.asyncio
async def test_disabled_toggles_omit_decorations(service) -> None:
    service.configs.upsert(
        ForecastingConfig(
            id="plain_lstm",
            algorithm="lstm",
            horizon=14,
            seasonality_detection=False,
            anomaly_detection=False,
            external_factors=False,
        )
    )

    forecast = await service.get_forecast(ALUMINIUM, PLANT, "plain_lstm")

    assert forecast.seasonality is None
    assert forecast.anomalies is None
    assert forecast.external_factors is None
    assert forecast.trend is not None


@pytest.mark.asyncio
async def test_configs_listing(service) -> None:
    configs = await service.get_forecasting_configs()
    assert {c.id for c in configs} == {"aluminium_config", "hardware_config", "construction_ensemble"}


@pytest.mark.asyncio
async def test_historical_data_lookup(service) -> None:
    records = await service.get_historical_data(ALUMINIUM, PLANT)

    assert len(records) == 730
    assert await service.get_historical_data("Unknown-Product-001", PLANT) == []


@pytest.mark.asyncio
async def test_forecast_comparison_backtests_each_algorithm(service) -> None:
    comparisons = await service.get_forecast_comparison(ALUMINIUM, PLANT)

    assert len(comparisons) == 30 * 4
    assert {c.algorithm for c in comparisons} == {"lstm", "arima", "prophet", "ensemble"}
    for c in comparisons:
        assert c.error == abs(c.actual - c.predicted)


@pytest.mark.asyncio
async def test_seasonal_and_trend_analysis(service) -> None:
    seasons = await service.get_seasonal_analysis(ALUMINIUM, PLANT)
    trends = await service.get_trend_analysis(ALUMINIUM, PLANT)

    assert {s.season for s in seasons} == set(Season)
    for s in seasons:
        assert s.low_demand <= s.average_demand <= s.peak_demand

    assert [t.period for t in trends] == [TrendPeriod.short, TrendPeriod.medium, TrendPeriod.long]
    assert all(t.direction in ("upward", "downward", "stable") for t in trends)
    assert all(0 <= t.confidence <= 100 for t in trends)


@pytest.mark.asyncio
async def test_diagnostics_require_history(service) -> None:
    with pytest.raises(NoHistoricalData):
        await service.get_trend_analysis(ALUMINIUM, "plant999")


@pytest.mark.asyncio
async def test_config_update_during_generation_is_not_overwritten(service, monkeypatch) -> None:
    gate = asyncio.Event()
    runner = RUNNERS[ForecastAlgorithm.ensemble]
    real_run = runner.run

    async def gated_run(series, config, rng):
        await gate.wait()
        return await real_run(series, config, rng)

    monkeypatch.setattr(runner, "run", gated_run)
    key = forecast_key(ALUMINIUM, PLANT, "construction_ensemble")

    running = asyncio.ensure_future(service.get_forecast(ALUMINIUM, PLANT, "construction_ensemble"))
    await asyncio.sleep(0.01)
    assert service._in_flight

    config = service.configs.get("construction_ensemble")
    await service.update_forecasting_config(config.model_copy(update={"horizon": 10}))
    assert service._in_flight == {}

    gate.set()
    superseded = await running

    assert len(superseded.predicted_demand) == 120
    assert service.cache.get(key) is None

    fresh = await service.get_forecast(ALUMINIUM, PLANT, "construction_ensemble")
    assert len(fresh.predicted_demand) == 10
    assert service.cache.get(key) is fresh


def test_seasonal_analysis_groups_by_calendar_season() -> None:
    start = END_DATE - timedelta(days=364)
    days = [start + timedelta(days=i) for i in range(365)]
    store = HistoricalDataStore()
    store.add_series(
        "Steel-Beams-001",
        PLANT,
        make_records("Steel-Beams-001", PLANT, [d.month * 10 for d in days]),
    )

    results = seasonal_analysis("Steel-Beams-001", PLANT, store.frame("Steel-Beams-001", PLANT), as_of=date(2025, 7, 1))
    by_season = {r.season: r for r in results}

    assert set(by_season) == set(Season)
    assert by_season[Season.winter].average_demand == 51
    assert (by_season[Season.winter].low_demand, by_season[Season.winter].peak_demand) == (10, 120)
    assert by_season[Season.spring].average_demand == 40
    assert by_season[Season.summer].average_demand == 70
    assert (by_season[Season.summer].low_demand, by_season[Season.summer].peak_demand) == (60, 80)
    assert by_season[Season.fall].average_demand == 100
    assert all(r.year == 2025 for r in results)


def test_seasonal_analysis_of_empty_frame() -> None:
    assert seasonal_analysis("Steel-Beams-001", PLANT, HistoricalDataStore().frame("Steel-Beams-001", PLANT), as_of=END_DATE) == []
