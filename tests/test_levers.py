"""Tests for control lever aggregation."""

import pytest

from projection import ConsistencyError, LayerUpdate, Token, TokenController, TokenControlLever
from projection.levers import running_average

def lever_update(event, token_id=6, lever_ids=(0,), previous=(50,), updated=(60,), cost=10, remaining=9):
    # gas_price * gas_used == cost
    return event(
        'ControlLeverUpdated',
        gas_price=cost,
        gas_used=1,
        token_id=token_id,
        priority_tip=0,
        num_remaining_updates=remaining,
        lever_ids=list(lever_ids),
        previous_values=list(previous),
        updated_values=list(updated)
    )

def test_running_average_first_sample_is_exact():
    assert running_average(0, 0, 0, 17) == (17, 0)

def test_running_average_sequence():
    average, remainder = 0, 0
    observed = []
    for count, cost in enumerate([10, 20, 30]):
        average, remainder = running_average(average, count, remainder, cost)
        observed.append(average)
    assert observed == [10, 15, 20]

@pytest.mark.parametrize('costs', [
    [7, 3, 10, 1, 0, 25, 4],
    [1, 2],
    [10 ** 30, 3, 10 ** 18 + 1],
    [5, 5, 5, 6],
])
def test_running_average_matches_recomputation(costs):
    average, remainder = 0, 0
    for count, cost in enumerate(costs):
        average, remainder = running_average(average, count, remainder, cost)
        assert average == sum(costs[:count + 1]) // (count + 1)

@pytest.mark.asyncio
async def test_update_records_layer_update(minted, event, apply, get):
    update_event = lever_update(event, cost=10)
    await apply(update_event)

    update = await get(LayerUpdate, '6-1')
    assert update.controller == '6-Controller'
    assert update.update_number == 1
    assert update.cost_in_wei == 10
    assert update.gas_price == 10
    assert update.gas_used == 1
    assert update.levers_updated == ['6-0']
    assert update.timestamp == update_event.timestamp

    lever = await get(TokenControlLever, '6-0')
    assert lever.previous_value == 50
    assert lever.current_value == 60
    assert lever.number_of_updates == 1
    assert lever.latest_update == '6-1'

    controller = await get(TokenController, '6-Controller')
    assert controller.number_of_updates == 1
    assert controller.num_remaining_updates == 9
    assert controller.average_update_cost == 10
    assert controller.last_update == '6-1'
    assert controller.all_updates == ['6-1']

@pytest.mark.asyncio
async def test_average_cost_over_updates(minted, event, apply, get):
    averages = []
    for cost in (10, 20, 30):
        await apply(lever_update(event, cost=cost))
        averages.append((await get(TokenController, '6-Controller')).average_update_cost)

    assert averages == [10, 15, 20]

@pytest.mark.asyncio
async def test_average_cost_keeps_remainder(minted, event, apply, get):
    costs = [7, 3, 10, 1]
    for count, cost in enumerate(costs, 1):
        await apply(lever_update(event, cost=cost))
        controller = await get(TokenController, '6-Controller')
        assert controller.average_update_cost == sum(costs[:count]) // count

@pytest.mark.asyncio
async def test_default_flags_follow_lever_values(minted, event, apply, get):
    await apply(lever_update(event, lever_ids=(0, 1), previous=(50, 0), updated=(60, -3)))

    assert not (await get(TokenController, '6-Controller')).all_levers_at_default
    assert not (await get(Token, 5)).all_layers_at_default

    await apply(lever_update(event, lever_ids=(0,), previous=(60,), updated=(50,)))
    assert not (await get(TokenController, '6-Controller')).all_levers_at_default

    await apply(lever_update(event, lever_ids=(1,), previous=(-3,), updated=(0,)))
    assert (await get(TokenController, '6-Controller')).all_levers_at_default
    assert (await get(Token, 5)).all_layers_at_default

    lever = await get(TokenControlLever, '6-1')
    assert lever.number_of_updates == 2
    assert lever.latest_update == '6-3'

@pytest.mark.asyncio
async def test_unknown_lever_rolls_back(minted, event, apply, store):
    before = store.snapshot()
    with pytest.raises(ConsistencyError):
        await apply(lever_update(event, lever_ids=(0, 7), previous=(50, 0), updated=(55, 1)))
    assert store.snapshot() == before

@pytest.mark.asyncio
async def test_master_token_has_no_controller(minted, event, apply):
    with pytest.raises(ConsistencyError):
        await apply(lever_update(event, token_id=5))

@pytest.mark.asyncio
async def test_update_of_missing_token(minted, event, apply):
    with pytest.raises(ConsistencyError):
        await apply(lever_update(event, token_id=40))
