"""
Tests for the commission policy store.

Covers:
- Active policy resolution per (org, type)
- Activation keeps exactly one active version
- Type mismatch guard
- Archive
- Request schema validation
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select

from leadflow.exceptions import NoActivePolicy, NotFoundError, PolicyTypeMismatch
from leadflow.models import Activity, ActivityType, CommissionPolicy, PolicyType
from leadflow.schemas.policy import PolicyCreateRequest, PolicyResponse
from leadflow.services.notifier import POLICY_ACTIVATED
from leadflow.services.policies import PolicyStore

from factories import SCENARIO_TIERS, create_org, create_policy


async def _active_ids(db, org_id, policy_type):
    result = await db.execute(
        select(CommissionPolicy.id).where(
            CommissionPolicy.org_id == org_id,
            CommissionPolicy.policy_type == policy_type,
            CommissionPolicy.is_active == True,  # noqa: E712
        )
    )
    return list(result.scalars().all())


# ── Resolution ────────────────────────────────────────────


class TestActivePolicy:
    @pytest.mark.asyncio
    async def test_returns_active_of_requested_type(self, db_session):
        org = await create_org(db_session)
        sales = await create_policy(db_session, org, PolicyType.SALES)
        await create_policy(db_session, org, PolicyType.DISPATCH)

        policy = await PolicyStore(db_session).get_active_policy(org.id, PolicyType.SALES)

        assert policy.id == sales.id

    @pytest.mark.asyncio
    async def test_no_active_policy_raises(self, db_session):
        org = await create_org(db_session)
        await create_policy(db_session, org, PolicyType.SALES, is_active=False)

        with pytest.raises(NoActivePolicy) as exc:
            await PolicyStore(db_session).get_active_policy(org.id, PolicyType.SALES)

        assert exc.value.details == {"org_id": org.id, "type": "sales"}

    @pytest.mark.asyncio
    async def test_user_without_org_has_no_policy(self, db_session):
        with pytest.raises(NoActivePolicy):
            await PolicyStore(db_session).get_active_policy(None, PolicyType.SALES)

    @pytest.mark.asyncio
    async def test_other_org_policy_not_used(self, db_session):
        org = await create_org(db_session, "acme")
        other = await create_org(db_session, "globex")
        await create_policy(db_session, other, PolicyType.SALES)

        with pytest.raises(NoActivePolicy):
            await PolicyStore(db_session).get_active_policy(org.id, PolicyType.SALES)


# ── Create / activate / archive ───────────────────────────


class TestPolicyLifecycle:
    @pytest.mark.asyncio
    async def test_create_inactive_by_default(self, db_session):
        org = await create_org(db_session)
        data = PolicyCreateRequest(
            org_id=org.id,
            type=PolicyType.SALES,
            name="Q3 plan",
            active_lead_table=SCENARIO_TIERS,
            starter_split=Decimal("0.5"),
        )

        policy = await PolicyStore(db_session).create(data, created_by=None)

        assert policy.id is not None
        assert policy.is_active is False
        assert policy.tiers() == [(0, Decimal("0")), (3, Decimal("500")), (6, Decimal("1000"))]

    @pytest.mark.asyncio
    async def test_create_and_activate(self, db_session, notifier):
        org = await create_org(db_session)
        old = await create_policy(db_session, org, PolicyType.SALES)
        data = PolicyCreateRequest(org_id=org.id, type=PolicyType.SALES, activate=True)

        policy = await PolicyStore(db_session, notifier).create(data, created_by=None)

        assert await _active_ids(db_session, org.id, PolicyType.SALES) == [policy.id]
        await db_session.refresh(old)
        assert old.is_active is False
        assert notifier.events() == [POLICY_ACTIVATED]

    @pytest.mark.asyncio
    async def test_create_for_missing_org(self, db_session):
        data = PolicyCreateRequest(org_id=404, type=PolicyType.SALES)

        with pytest.raises(NotFoundError):
            await PolicyStore(db_session).create(data, created_by=None)

    @pytest.mark.asyncio
    async def test_activate_keeps_single_active(self, db_session):
        org = await create_org(db_session)
        first = await create_policy(db_session, org, PolicyType.SALES, is_active=True)
        second = await create_policy(db_session, org, PolicyType.SALES, is_active=False)
        third = await create_policy(db_session, org, PolicyType.SALES, is_active=False)
        store = PolicyStore(db_session)

        await store.activate(second.id)
        assert await _active_ids(db_session, org.id, PolicyType.SALES) == [second.id]

        await store.activate(third.id)
        assert await _active_ids(db_session, org.id, PolicyType.SALES) == [third.id]

        await store.activate(first.id)
        assert await _active_ids(db_session, org.id, PolicyType.SALES) == [first.id]

    @pytest.mark.asyncio
    async def test_activate_leaves_other_type_alone(self, db_session):
        org = await create_org(db_session)
        dispatch = await create_policy(db_session, org, PolicyType.DISPATCH)
        sales = await create_policy(db_session, org, PolicyType.SALES, is_active=False)

        await PolicyStore(db_session).activate(sales.id)

        assert await _active_ids(db_session, org.id, PolicyType.DISPATCH) == [dispatch.id]

    @pytest.mark.asyncio
    async def test_activate_type_mismatch(self, db_session):
        org = await create_org(db_session)
        policy = await create_policy(db_session, org, PolicyType.DISPATCH, is_active=False)

        with pytest.raises(PolicyTypeMismatch) as exc:
            await PolicyStore(db_session).activate(policy.id, expected_type=PolicyType.SALES)

        assert exc.value.status_code == 400
        assert await _active_ids(db_session, org.id, PolicyType.DISPATCH) == []

    @pytest.mark.asyncio
    async def test_activate_missing_policy(self, db_session):
        with pytest.raises(NotFoundError):
            await PolicyStore(db_session).activate(999)

    @pytest.mark.asyncio
    async def test_archive(self, db_session):
        org = await create_org(db_session)
        policy = await create_policy(db_session, org, PolicyType.SALES)

        archived = await PolicyStore(db_session).archive(policy.id)

        assert archived.is_active is False
        assert archived.valid_to is not None
        with pytest.raises(NoActivePolicy):
            await PolicyStore(db_session).get_active_policy(org.id, PolicyType.SALES)

    @pytest.mark.asyncio
    async def test_changes_are_recorded(self, db_session):
        org = await create_org(db_session)
        policy = await create_policy(db_session, org, PolicyType.SALES, is_active=False)
        store = PolicyStore(db_session)

        await store.activate(policy.id)
        await store.archive(policy.id)

        result = await db_session.execute(
            select(Activity.activity_type).where(Activity.entity_type == "policy").order_by(Activity.id)
        )
        assert list(result.scalars().all()) == [
            ActivityType.POLICY_ACTIVATED,
            ActivityType.POLICY_ARCHIVED,
        ]

    @pytest.mark.asyncio
    async def test_list_filters_by_type(self, db_session):
        org = await create_org(db_session)
        await create_policy(db_session, org, PolicyType.SALES)
        dispatch = await create_policy(db_session, org, PolicyType.DISPATCH)

        policies = await PolicyStore(db_session).list(org.id, PolicyType.DISPATCH)

        assert [p.id for p in policies] == [dispatch.id]

    @pytest.mark.asyncio
    async def test_response_exposes_type(self, db_session):
        org = await create_org(db_session)
        policy = await create_policy(db_session, org, PolicyType.DISPATCH, commission_rate=Decimal("0.02"))

        response = PolicyResponse.model_validate(policy)

        assert response.type == PolicyType.DISPATCH
        assert response.commission_rate == Decimal("0.02")


# ── Request validation ────────────────────────────────────


class TestPolicyCreateRequest:
    def test_duplicate_thresholds_rejected(self):
        with pytest.raises(PydanticValidationError):
            PolicyCreateRequest(
                org_id=1,
                type=PolicyType.SALES,
                active_lead_table=[
                    {"active_leads": 3, "amount": "500"},
                    {"active_leads": 3, "amount": "700"},
                ],
            )

    def test_split_above_one_rejected(self):
        with pytest.raises(PydanticValidationError):
            PolicyCreateRequest(org_id=1, type=PolicyType.SALES, starter_split=Decimal("1.5"))

    def test_negative_amount_rejected(self):
        with pytest.raises(PydanticValidationError):
            PolicyCreateRequest(
                org_id=1,
                type=PolicyType.SALES,
                active_lead_table=[{"active_leads": 0, "amount": "-1"}],
            )

    def test_unknown_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            PolicyCreateRequest(org_id=1, type="marketing")
