import asyncio
from unittest.mock import AsyncMock

import pytest

from isyourdayok.core.exceptions.handler import (
    Conflict,
    ExternalServiceError,
    NotFound,
    ServiceErrorCode,
    ValidationFailed,
)
from isyourdayok.core.service.achievement.models import AchievementStatus, MintReceipt, MintState
from isyourdayok.core.service.activity.models import ChainUserData
from isyourdayok.core.service.chat.models import ChatMessageType

NFT_CONTRACT = "0x1111111111111111111111111111111111111111"
TX_HASH = "0x" + "ab" * 32


def _record(store, user, achievement_type="journal-7"):
    return store.achievements.records.get((user.id, achievement_type))


async def test_mint_success(mint_coordinator, minting_authority, store, redis_client, user, set_streaks):
    set_streaks(user.id, journal=7)

    result = await mint_coordinator.mint(user.wallet_address, "journal-7", 80)

    assert result.success is True
    assert result.token_id == "42"
    assert result.transaction_hash == TX_HASH
    assert result.contract_address == NFT_CONTRACT

    minting_authority.send_mint.assert_awaited_once_with(
        user.wallet_address, 0, 80, "https://isyourdayok.com/nft-metadata/journal-7.json"
    )

    record = _record(store, user)
    assert record.status == MintState.MINTED
    assert record.token_id == "42"
    assert record.improvement_rating == 80
    assert record.days == 7

    milestone = store.chat_messages.messages[-1]
    assert milestone.type == ChatMessageType.MILESTONE
    assert milestone.content == "alice earned the 7-Day Journal Streak achievement!"

    assert redis_client.data == {}


async def test_already_minted_on_chain(mint_coordinator, minting_authority, store, user, set_streaks):
    set_streaks(user.id, journal=30)
    minting_authority.has_minted = AsyncMock(return_value=True)

    with pytest.raises(Conflict) as exc_info:
        await mint_coordinator.mint(user.wallet_address, "journal-7", 50)

    assert exc_info.value.code == ServiceErrorCode.ALREADY_MINTED
    minting_authority.send_mint.assert_not_awaited()
    assert store.achievements.records == {}


@pytest.mark.parametrize("rating", [0, 101, -5])
async def test_rating_out_of_range(mint_coordinator, minting_authority, user, set_streaks, rating):
    set_streaks(user.id, journal=7)

    with pytest.raises(ValidationFailed) as exc_info:
        await mint_coordinator.mint(user.wallet_address, "journal-7", rating)

    assert exc_info.value.code == ServiceErrorCode.INVALID_RATING
    minting_authority.has_minted.assert_not_awaited()
    minting_authority.send_mint.assert_not_awaited()


@pytest.mark.parametrize("rating", [1, 100])
async def test_rating_bounds_accepted(mint_coordinator, user, set_streaks, rating):
    set_streaks(user.id, meditation=7)
    result = await mint_coordinator.mint(user.wallet_address, "meditation-7", rating)
    assert result.achievement_type == "meditation-7"


async def test_unknown_achievement_type(mint_coordinator, minting_authority, user):
    with pytest.raises(ValidationFailed) as exc_info:
        await mint_coordinator.mint(user.wallet_address, "journal-365", 50)

    assert exc_info.value.code == ServiceErrorCode.INVALID_ACHIEVEMENT_TYPE
    minting_authority.has_minted.assert_not_awaited()


async def test_unknown_user(mint_coordinator):
    with pytest.raises(NotFound):
        await mint_coordinator.mint("0x" + "99" * 20, "journal-7", 50)


async def test_locked_achievement(mint_coordinator, minting_authority, store, user, set_streaks):
    set_streaks(user.id, journal=6)

    with pytest.raises(Conflict) as exc_info:
        await mint_coordinator.mint(user.wallet_address, "journal-7", 50)

    assert exc_info.value.code == ServiceErrorCode.ACHIEVEMENT_LOCKED
    assert exc_info.value.details == {"current": 6, "target": 7}
    minting_authority.send_mint.assert_not_awaited()
    assert store.achievements.records == {}


async def test_chain_streak_unlocks(mint_coordinator, points_contract, user):
    points_contract.get_user_data = AsyncMock(return_value=ChainUserData(
        total_points=0,
        journal_streak=0,
        meditation_streak=30,
        last_journal_date=0,
        last_meditation_date=0
    ))

    result = await mint_coordinator.mint(user.wallet_address, "meditation-30", 90)
    assert result.token_id == "42"


async def test_concurrent_mint_is_rejected(mint_coordinator, minting_authority, redis_client, user, set_streaks):
    set_streaks(user.id, journal=7)
    lock_key = f"mint:lock:{user.wallet_address}:journal-7"
    await redis_client.set(lock_key, "1")

    with pytest.raises(Conflict) as exc_info:
        await mint_coordinator.mint(user.wallet_address, "journal-7", 50)

    assert exc_info.value.code == ServiceErrorCode.MINT_IN_PROGRESS
    minting_authority.send_mint.assert_not_awaited()
    assert await redis_client.get(lock_key) == "1"


async def test_pending_record_blocks_new_attempt(mint_coordinator, minting_authority, store, user, set_streaks):
    set_streaks(user.id, journal=7)
    await store.achievements.upsert_pending(user.id, "journal-7", 7, 50)

    with pytest.raises(Conflict) as exc_info:
        await mint_coordinator.mint(user.wallet_address, "journal-7", 50)

    assert exc_info.value.code == ServiceErrorCode.MINT_IN_PROGRESS
    minting_authority.send_mint.assert_not_awaited()


async def test_failure_reconciles_to_minted_when_chain_has_it(
    mint_coordinator, minting_authority, store, redis_client, user, set_streaks
):
    set_streaks(user.id, journal=7)
    minting_authority.has_minted = AsyncMock(side_effect=[False, True])
    error = ExternalServiceError("Mint transaction was not confirmed", code=ServiceErrorCode.TRANSACTION_FAILED)
    minting_authority.wait_for_mint = AsyncMock(side_effect=error)

    with pytest.raises(ExternalServiceError) as exc_info:
        await mint_coordinator.mint(user.wallet_address, "journal-7", 60)

    assert exc_info.value is error
    record = _record(store, user)
    assert record.status == MintState.MINTED
    assert record.token_id == "0"
    assert record.transaction_hash == TX_HASH
    assert redis_client.data == {}


async def test_failure_reconciles_to_failed(mint_coordinator, minting_authority, store, user, set_streaks):
    set_streaks(user.id, journal=7)
    minting_authority.send_mint = AsyncMock(side_effect=ExternalServiceError(
        "Failed to submit mint transaction", code=ServiceErrorCode.TRANSACTION_FAILED
    ))

    with pytest.raises(ExternalServiceError) as exc_info:
        await mint_coordinator.mint(user.wallet_address, "journal-7", 60)

    assert exc_info.value.code == ServiceErrorCode.TRANSACTION_FAILED
    record = _record(store, user)
    assert record.status == MintState.FAILED
    assert record.last_error == "Failed to submit mint transaction"
    assert store.chat_messages.messages == []


async def test_failure_with_unreachable_chain_stays_pending(
    mint_coordinator, minting_authority, store, user, set_streaks
):
    set_streaks(user.id, journal=7)
    minting_authority.send_mint = AsyncMock(side_effect=RuntimeError("rpc down"))
    minting_authority.has_minted = AsyncMock(side_effect=[False, ExternalServiceError()])

    with pytest.raises(RuntimeError):
        await mint_coordinator.mint(user.wallet_address, "journal-7", 60)

    assert _record(store, user).status == MintState.PENDING


async def test_failed_record_can_be_retried(mint_coordinator, minting_authority, store, user, set_streaks):
    set_streaks(user.id, journal=7)
    minting_authority.send_mint = AsyncMock(side_effect=[ExternalServiceError(), TX_HASH])

    with pytest.raises(ExternalServiceError):
        await mint_coordinator.mint(user.wallet_address, "journal-7", 60)
    first_id = _record(store, user).id
    assert _record(store, user).status == MintState.FAILED

    result = await mint_coordinator.mint(user.wallet_address, "journal-7", 70)

    assert result.token_id == "42"
    record = _record(store, user)
    assert record.id == first_id
    assert record.status == MintState.MINTED
    assert record.improvement_rating == 70


async def test_reconcile_settles_pending_records(mint_coordinator, minting_authority, store, user):
    await store.achievements.upsert_pending(user.id, "journal-7", 7, 50)
    await store.achievements.upsert_pending(user.id, "meditation-7", 7, 50)
    minting_authority.has_minted = AsyncMock(side_effect=lambda wallet, code: code == 0)

    settled = await mint_coordinator.reconcile_wallet(user.wallet_address)

    assert {r.type: r.status for r in settled} == {
        "journal-7": MintState.MINTED,
        "meditation-7": MintState.FAILED,
    }


async def test_reconcile_without_contract_is_noop(mint_coordinator, minting_authority, store, user):
    minting_authority.contract_address = None
    await store.achievements.upsert_pending(user.id, "journal-7", 7, 50)

    assert await mint_coordinator.reconcile_wallet(user.wallet_address) == []
    minting_authority.has_minted.assert_not_awaited()
    assert _record(store, user).status == MintState.PENDING


async def test_list_progress_shows_minted(mint_coordinator, user, set_streaks):
    set_streaks(user.id, journal=7, meditation=3)
    await mint_coordinator.mint(user.wallet_address, "journal-7", 75)

    progress = {p.type: p for p in await mint_coordinator.list_progress(user.wallet_address)}

    assert progress["journal-7"].status == AchievementStatus.MINTED
    assert progress["journal-30"].status == AchievementStatus.IN_PROGRESS
    assert progress["meditation-7"].status == AchievementStatus.IN_PROGRESS
    assert progress["meditation-30"].status == AchievementStatus.IN_PROGRESS
    assert progress["meditation-7"].current == 3

    records = await mint_coordinator.list_achievements(user.wallet_address)
    assert [r.type for r in records] == ["journal-7"]


async def test_lock_holds_a_random_owner_token(mint_coordinator, minting_authority, redis_client, user, set_streaks):
    set_streaks(user.id, journal=7)
    lock_key = f"mint:lock:{user.wallet_address}:journal-7"
    held = []

    async def send_mint(*args):
        held.append(redis_client.data[lock_key])
        return TX_HASH

    minting_authority.send_mint = AsyncMock(side_effect=send_mint)

    await mint_coordinator.mint(user.wallet_address, "journal-7", 50)

    assert len(held[0]) == 32
    assert lock_key not in redis_client.data


async def test_expired_lock_taken_by_another_attempt_is_kept(
    mint_coordinator, minting_authority, redis_client, user, set_streaks
):
    set_streaks(user.id, journal=7)
    lock_key = f"mint:lock:{user.wallet_address}:journal-7"

    async def send_mint(*args):
        # our lock expired and a second attempt acquired it
        redis_client.data[lock_key] = "second-attempt"
        return TX_HASH

    minting_authority.send_mint = AsyncMock(side_effect=send_mint)

    await mint_coordinator.mint(user.wallet_address, "journal-7", 50)

    assert await redis_client.get(lock_key) == "second-attempt"


async def test_listing_during_inflight_mint_keeps_record_pending(
    mint_coordinator, minting_authority, store, user, set_streaks
):
    set_streaks(user.id, journal=7)
    waiting = asyncio.Event()
    mined = asyncio.Event()

    async def wait_for_mint(tx_hash):
        waiting.set()
        await mined.wait()
        return MintReceipt(transaction_hash=tx_hash, token_id="42", contract_address=NFT_CONTRACT, block_number=100)

    minting_authority.wait_for_mint = AsyncMock(side_effect=wait_for_mint)

    mint_task = asyncio.create_task(mint_coordinator.mint(user.wallet_address, "journal-7", 80))
    await waiting.wait()

    progress = {p.type: p for p in await mint_coordinator.list_progress(user.wallet_address)}

    record = _record(store, user)
    assert record.status == MintState.PENDING
    assert record.last_error is None
    assert progress["journal-7"].status == AchievementStatus.UNLOCKED
    minting_authority.lookup_mint.assert_not_awaited()

    mined.set()
    result = await mint_task

    assert result.token_id == "42"
    assert _record(store, user).status == MintState.MINTED


async def test_reconcile_leaves_unmined_transaction_pending(mint_coordinator, minting_authority, store, user):
    record = await store.achievements.upsert_pending(user.id, "journal-7", 7, 50)
    await store.achievements.set_transaction_hash(record.id, TX_HASH)

    assert await mint_coordinator.reconcile_wallet(user.wallet_address) == []

    minting_authority.lookup_mint.assert_awaited_once_with(TX_HASH)
    assert _record(store, user).status == MintState.PENDING


async def test_reconcile_marks_reverted_transaction_failed(mint_coordinator, minting_authority, store, user):
    record = await store.achievements.upsert_pending(user.id, "journal-7", 7, 50)
    await store.achievements.set_transaction_hash(record.id, TX_HASH)
    minting_authority.lookup_mint = AsyncMock(return_value=MintReceipt(
        transaction_hash=TX_HASH, token_id="0", contract_address=NFT_CONTRACT, block_number=101, reverted=True
    ))

    settled = await mint_coordinator.reconcile_wallet(user.wallet_address)

    assert [r.status for r in settled] == [MintState.FAILED]
    assert _record(store, user).last_error == "Mint transaction reverted"


async def test_reconcile_settles_mined_transaction_with_its_token(mint_coordinator, minting_authority, store, user):
    record = await store.achievements.upsert_pending(user.id, "journal-7", 7, 50)
    await store.achievements.set_transaction_hash(record.id, TX_HASH)
    minting_authority.lookup_mint = AsyncMock(return_value=MintReceipt(
        transaction_hash=TX_HASH, token_id="17", contract_address=NFT_CONTRACT, block_number=101
    ))

    await mint_coordinator.reconcile_wallet(user.wallet_address)

    record = _record(store, user)
    assert record.status == MintState.MINTED
    assert record.token_id == "17"
    assert record.transaction_hash == TX_HASH


async def test_listing_restores_mint_missing_from_cache(mint_coordinator, minting_authority, store, user, set_streaks):
    set_streaks(user.id, journal=9)
    minting_authority.has_minted = AsyncMock(side_effect=lambda wallet, code: code == 0)

    progress = {p.type: p for p in await mint_coordinator.list_progress(user.wallet_address)}

    assert progress["journal-7"].status == AchievementStatus.MINTED
    assert progress["journal-30"].status == AchievementStatus.IN_PROGRESS
    record = _record(store, user)
    assert record.status == MintState.MINTED
    assert record.token_id == "0"
    assert record.contract_address == NFT_CONTRACT
    assert record.improvement_rating is None


async def test_reconcile_restores_failed_record_minted_on_chain(mint_coordinator, minting_authority, store, user):
    record = await store.achievements.upsert_pending(user.id, "meditation-7", 7, 40)
    await store.achievements.mark_failed(record.id, "Mint transaction was not confirmed")
    minting_authority.has_minted = AsyncMock(side_effect=lambda wallet, code: code == 2)

    settled = await mint_coordinator.reconcile_wallet(user.wallet_address)

    assert [(r.id, r.status) for r in settled] == [(record.id, MintState.MINTED)]
    assert _record(store, user, "meditation-7").last_error is None


async def test_reconcile_skips_types_already_cached_as_minted(mint_coordinator, minting_authority, user, set_streaks):
    set_streaks(user.id, journal=7)
    await mint_coordinator.mint(user.wallet_address, "journal-7", 50)
    minting_authority.has_minted.reset_mock()

    await mint_coordinator.reconcile_wallet(user.wallet_address)

    assert [c.args[1] for c in minting_authority.has_minted.await_args_list] == [1, 2, 3]
