"""
Unit Tests for Maintenance Billing and Payment Endpoints
"""
import hashlib
import hmac
import json
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.models.maintenance import BillStatus


def bill_payload(**overrides) -> dict:
    data = {
        'wing': 'a',
        'flat_no': '101',
        'amount': 2500,
        'month': 'March',
        'year': 2025,
        'due_date': '2099-03-10',
    }
    data.update(overrides)
    return data


def sign(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


@pytest.fixture
def bill_email():
    with patch('app.api.v1.endpoints.maintenance.email_service') as service:
        service.send_bill_email = AsyncMock(return_value=True)
        yield service


@pytest.fixture
def production(monkeypatch):
    monkeypatch.setattr(settings, 'ENVIRONMENT', 'production')


class TestCreateBill:
    """Test POST /maintenance and /maintenance/bulk"""

    @pytest.mark.asyncio
    async def test_admin_creates_bill(self, client: AsyncClient, admin_auth_headers, test_user, bill_email):
        response = await client.post('/api/v1/maintenance', headers=admin_auth_headers, json=bill_payload())

        assert response.status_code == 201
        body = response.json()
        assert body['message'] == f'Maintenance bill created successfully for {test_user.full_name}'
        data = body['data']
        assert data['wing'] == 'A'
        assert data['amount'] == 2500
        assert data['status'] == 'pending'
        assert data['payment_status'] == 'pending'
        assert data['resident']['id'] == test_user.id
        bill_email.send_bill_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_resident_for_flat(self, client: AsyncClient, admin_auth_headers, test_user, bill_email):
        response = await client.post('/api/v1/maintenance', headers=admin_auth_headers, json=bill_payload(wing='C'))

        assert response.status_code == 400
        error = response.json()['error']
        assert error['message'] == 'No resident found for C-101. Please assign a resident to this flat first.'
        bill_email.send_bill_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_period(self, client: AsyncClient, admin_auth_headers, test_user, bill_email):
        await client.post('/api/v1/maintenance', headers=admin_auth_headers, json=bill_payload())

        response = await client.post('/api/v1/maintenance', headers=admin_auth_headers, json=bill_payload())

        assert response.status_code == 400
        assert response.json()['error']['message'] == 'Maintenance bill already exists for A-101 for March 2025'

    @pytest.mark.asyncio
    async def test_non_positive_amount(self, client: AsyncClient, admin_auth_headers, test_user):
        response = await client.post('/api/v1/maintenance', headers=admin_auth_headers, json=bill_payload(amount=0))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_blank_wing(self, client: AsyncClient, admin_auth_headers, test_user, bill_email):
        response = await client.post('/api/v1/maintenance', headers=admin_auth_headers, json=bill_payload(wing='  '))

        assert response.status_code == 422
        bill_email.send_bill_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resident_cannot_create(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/maintenance', headers=auth_headers, json=bill_payload())

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_bulk_reports_errors(self, client: AsyncClient, admin_auth_headers, test_user, other_user, bill_email):
        response = await client.post('/api/v1/maintenance/bulk', headers=admin_auth_headers, json={'bills': [
            bill_payload(),
            bill_payload(wing='B', flat_no='202'),
            bill_payload(),
            bill_payload(wing='Z', flat_no='1'),
        ]})

        assert response.status_code == 201
        body = response.json()
        assert body['created_count'] == 2
        assert len(body['errors']) == 2
        assert body['message'] == 'Created 2 maintenance bills successfully with 2 errors'

        assert bill_email.send_bill_email.await_count == 2
        recipients = {c.args[0] for c in bill_email.send_bill_email.await_args_list}
        assert recipients == {test_user.email, other_user.email}

    @pytest.mark.asyncio
    async def test_bulk_requires_bills(self, client: AsyncClient, admin_auth_headers):
        response = await client.post('/api/v1/maintenance/bulk', headers=admin_auth_headers, json={'bills': []})

        assert response.status_code == 400
        assert response.json()['detail'] == 'Bills array is required'


class TestListAndGetBills:
    """Test GET /maintenance and /maintenance/{id}"""

    @pytest.mark.asyncio
    async def test_resident_sees_own_bills(self, client: AsyncClient, auth_headers, test_user, other_user, make_bill):
        await make_bill(test_user)
        await make_bill(other_user)

        response = await client.get('/api/v1/maintenance', headers=auth_headers)

        assert response.status_code == 200
        bills = response.json()['data']
        assert len(bills) == 1
        assert bills[0]['resident']['id'] == test_user.id

    @pytest.mark.asyncio
    async def test_admin_sees_all(self, client: AsyncClient, admin_auth_headers, test_user, other_user, make_bill):
        await make_bill(test_user)
        await make_bill(other_user)

        response = await client.get('/api/v1/maintenance', headers=admin_auth_headers)

        assert response.json()['count'] == 2

    @pytest.mark.asyncio
    async def test_listing_marks_overdue(self, client: AsyncClient, auth_headers, test_user, make_bill):
        await make_bill(test_user, due_date=datetime.utcnow() - timedelta(days=1))
        await make_bill(test_user, month='February')

        response = await client.get('/api/v1/maintenance', headers=auth_headers)

        statuses = {b['month']: b['status'] for b in response.json()['data']}
        assert statuses == {'January': 'overdue', 'February': 'pending'}

    @pytest.mark.asyncio
    async def test_get_own_bill(self, client: AsyncClient, auth_headers, bill):
        response = await client.get(f'/api/v1/maintenance/{bill.id}', headers=auth_headers)

        assert response.status_code == 200
        assert response.json()['data']['id'] == bill.id

    @pytest.mark.asyncio
    async def test_get_other_residents_bill(self, client: AsyncClient, other_auth_headers, bill):
        response = await client.get(f'/api/v1/maintenance/{bill.id}', headers=other_auth_headers)

        assert response.status_code == 403
        assert response.json()['error']['message'] == 'Not authorized to view this bill'

    @pytest.mark.asyncio
    async def test_get_missing_bill(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/maintenance/00000000-0000-0000-0000-000000000000', headers=auth_headers)

        assert response.status_code == 404
        assert response.json()['error']['code'] == 'MAINTENANCE_BILL_NOT_FOUND'


class TestUpdateDeleteBill:
    """Test PUT/DELETE /maintenance/{id}"""

    @pytest.mark.asyncio
    async def test_update_amount(self, client: AsyncClient, admin_auth_headers, bill):
        response = await client.put(f'/api/v1/maintenance/{bill.id}', headers=admin_auth_headers, json={'amount': 1800})

        assert response.status_code == 200
        assert response.json()['data']['amount'] == 1800

    @pytest.mark.asyncio
    async def test_update_into_existing_period(self, client: AsyncClient, admin_auth_headers, test_user, bill, make_bill):
        other = await make_bill(test_user, month='February')

        response = await client.put(f'/api/v1/maintenance/{other.id}', headers=admin_auth_headers, json={'month': 'January'})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_resident_cannot_update(self, client: AsyncClient, auth_headers, bill):
        response = await client.put(f'/api/v1/maintenance/{bill.id}', headers=auth_headers, json={'amount': 1})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, admin_auth_headers, bill):
        response = await client.delete(f'/api/v1/maintenance/{bill.id}', headers=admin_auth_headers)
        assert response.status_code == 200

        missing = await client.get(f'/api/v1/maintenance/{bill.id}', headers=admin_auth_headers)
        assert missing.status_code == 404


class TestCreateOrder:
    """Test POST /maintenance/{id}/create-order"""

    @pytest.mark.asyncio
    async def test_create_order(self, client: AsyncClient, auth_headers, bill, gateway, db_session):
        response = await client.post(f'/api/v1/maintenance/{bill.id}/create-order', headers=auth_headers)

        assert response.status_code == 200
        data = response.json()['data']
        assert data['id'] == 'order_test1'
        assert data['amount'] == 150000
        assert data['currency'] == 'INR'
        assert data['key_id'] == 'rzp_test_key'
        assert data['receipt'] == f'maint_{bill.id[-12:]}'
        assert data['notes']['maintenance_id'] == bill.id
        assert data['notes']['year'] == '2025'

        await db_session.refresh(bill)
        assert bill.razorpay_order_id == 'order_test1'

    @pytest.mark.asyncio
    async def test_gateway_not_configured(self, client: AsyncClient, auth_headers, bill, gateway):
        gateway.key_id = ''

        response = await client.post(f'/api/v1/maintenance/{bill.id}/create-order', headers=auth_headers)

        assert response.status_code == 503
        assert response.json()['success'] is False

    @pytest.mark.asyncio
    async def test_already_paid(self, client: AsyncClient, auth_headers, test_user, make_bill):
        paid = await make_bill(test_user, status=BillStatus.PAID)

        response = await client.post(f'/api/v1/maintenance/{paid.id}/create-order', headers=auth_headers)

        assert response.status_code == 400
        assert response.json()['detail'] == 'This bill has already been paid'

    @pytest.mark.asyncio
    async def test_not_owner(self, client: AsyncClient, other_auth_headers, bill):
        response = await client.post(f'/api/v1/maintenance/{bill.id}/create-order', headers=other_auth_headers)

        assert response.status_code == 403
        assert response.json()['error']['message'] == 'Not authorized to pay this bill'

    @pytest.mark.asyncio
    async def test_gateway_failure(self, client: AsyncClient, auth_headers, bill, gateway):
        from app.core.exceptions import PaymentGatewayError
        gateway.fail_with = PaymentGatewayError(
            "Payment gateway authentication failed. Please check Razorpay credentials."
        )

        response = await client.post(f'/api/v1/maintenance/{bill.id}/create-order', headers=auth_headers)

        assert response.status_code == 502
        assert 'authentication failed' in response.json()['error']['message']


class TestVerifyPayment:
    """Test POST /maintenance/{id}/verify-payment"""

    async def _ordered_bill(self, client, headers, bill) -> str:
        response = await client.post(f'/api/v1/maintenance/{bill.id}/create-order', headers=headers)
        return response.json()['data']['id']

    @pytest.mark.asyncio
    async def test_captured_payment_marks_paid(self, client: AsyncClient, auth_headers, bill, gateway, db_session):
        order_id = await self._ordered_bill(client, auth_headers, bill)
        gateway.payments['pay_1'] = {'id': 'pay_1', 'status': 'captured', 'order_id': order_id}

        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_1',
            'razorpay_order_id': order_id,
            'razorpay_signature': sign(gateway.key_secret, f'{order_id}|pay_1'.encode()),
        })

        assert response.status_code == 200
        body = response.json()
        assert body['message'] == 'Payment verified successfully (Status: captured)'
        assert body['data']['status'] == 'paid'
        assert body['data']['payment_status'] == 'captured'
        assert body['data']['razorpay_payment_id'] == 'pay_1'

        await db_session.refresh(bill)
        assert bill.payment_date is not None

    @pytest.mark.asyncio
    async def test_second_verify_is_idempotent(self, client: AsyncClient, auth_headers, bill, gateway):
        order_id = await self._ordered_bill(client, auth_headers, bill)
        gateway.payments['pay_1'] = {'id': 'pay_1', 'status': 'authorized', 'order_id': order_id}
        url = f'/api/v1/maintenance/{bill.id}/verify-payment'

        await client.post(url, headers=auth_headers, json={'razorpay_payment_id': 'pay_1'})
        response = await client.post(url, headers=auth_headers, json={'razorpay_payment_id': 'pay_1'})

        assert response.status_code == 200
        assert response.json()['message'] == 'Payment already verified'

    @pytest.mark.asyncio
    async def test_bad_signature(self, client: AsyncClient, auth_headers, bill, gateway):
        order_id = await self._ordered_bill(client, auth_headers, bill)
        gateway.payments['pay_1'] = {'id': 'pay_1', 'status': 'captured', 'order_id': order_id}

        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_1',
            'razorpay_order_id': order_id,
            'razorpay_signature': 'forged',
        })

        assert response.status_code == 400
        assert response.json()['detail'] == 'Invalid payment signature'

    @pytest.mark.asyncio
    async def test_failed_payment(self, client: AsyncClient, auth_headers, bill, gateway, db_session):
        order_id = await self._ordered_bill(client, auth_headers, bill)
        gateway.payments['pay_1'] = {
            'id': 'pay_1', 'status': 'failed', 'order_id': order_id, 'error_description': 'Card declined'
        }

        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_1',
        })

        assert response.status_code == 400
        assert response.json()['detail'] == 'Payment failed: Card declined'
        await db_session.refresh(bill)
        assert bill.status.value == 'pending'
        assert bill.payment_status.value == 'failed'

    @pytest.mark.asyncio
    async def test_incomplete_payment(self, client: AsyncClient, auth_headers, bill, gateway):
        order_id = await self._ordered_bill(client, auth_headers, bill)
        gateway.payments['pay_1'] = {'id': 'pay_1', 'status': 'created', 'order_id': order_id}

        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_1',
        })

        assert response.status_code == 400
        assert response.json()['detail'] == 'Payment not completed. Status: created'

    @pytest.mark.asyncio
    async def test_payment_for_other_order(self, client: AsyncClient, auth_headers, bill, gateway):
        await self._ordered_bill(client, auth_headers, bill)
        gateway.payments['pay_1'] = {'id': 'pay_1', 'status': 'captured', 'order_id': 'order_elsewhere'}

        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_1',
        })

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_supplied_order_must_match_bill(self, client: AsyncClient, auth_headers, bill, gateway, db_session):
        order_id = await self._ordered_bill(client, auth_headers, bill)
        gateway.payments['pay_1'] = {'id': 'pay_1', 'status': 'captured'}

        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_1',
            'razorpay_order_id': 'order_somebody_else',
        })

        assert response.status_code == 400
        assert response.json()['detail'] == 'Payment does not belong to this bill'
        await db_session.refresh(bill)
        assert bill.status.value == 'pending'
        assert bill.razorpay_order_id == order_id

    @pytest.mark.asyncio
    async def test_stored_order_kept_when_gateway_omits_it(self, client: AsyncClient, auth_headers, bill, gateway):
        order_id = await self._ordered_bill(client, auth_headers, bill)
        gateway.payments['pay_1'] = {'id': 'pay_1', 'status': 'captured'}

        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_1',
        })

        assert response.status_code == 200
        assert response.json()['data']['razorpay_order_id'] == order_id

    @pytest.mark.asyncio
    async def test_dev_mode_fallback(self, client: AsyncClient, auth_headers, bill):
        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_unknown',
        })

        assert response.status_code == 200
        body = response.json()
        assert body['message'] == 'Payment verified (development mode)'
        assert body['data']['status'] == 'paid'
        assert body['data']['payment_status'] == 'authorized'
        assert body['data']['razorpay_order_id'] == 'dev_verification'

    @pytest.mark.asyncio
    async def test_production_has_no_fallback(self, client: AsyncClient, auth_headers, bill, production):
        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=auth_headers, json={
            'razorpay_payment_id': 'pay_unknown',
        })

        assert response.status_code == 502
        assert response.json()['success'] is False

    @pytest.mark.asyncio
    async def test_not_owner(self, client: AsyncClient, other_auth_headers, bill):
        response = await client.post(f'/api/v1/maintenance/{bill.id}/verify-payment', headers=other_auth_headers, json={
            'razorpay_payment_id': 'pay_1',
        })

        assert response.status_code == 403


class TestSimulatePayment:
    """Test POST /maintenance/{id}/simulate-payment"""

    @pytest.mark.asyncio
    async def test_simulate(self, client: AsyncClient, auth_headers, bill):
        response = await client.post(f'/api/v1/maintenance/{bill.id}/simulate-payment', headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body['message'] == 'Payment simulated successfully'
        assert body['data']['status'] == 'paid'
        assert body['data']['payment_status'] == 'captured'
        assert body['data']['razorpay_payment_id'].startswith('simulated_')

    @pytest.mark.asyncio
    async def test_simulate_twice(self, client: AsyncClient, auth_headers, bill):
        url = f'/api/v1/maintenance/{bill.id}/simulate-payment'
        await client.post(url, headers=auth_headers)

        response = await client.post(url, headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_simulate_blocked_in_production(self, client: AsyncClient, auth_headers, bill, production):
        response = await client.post(f'/api/v1/maintenance/{bill.id}/simulate-payment', headers=auth_headers)

        assert response.status_code == 403
        assert response.json()['detail'] == 'Simulated payments are not allowed in production'


class TestPaymentLookupAndWebhook:
    """Test GET /maintenance/payment/{id} and POST /maintenance/webhook"""

    @pytest.mark.asyncio
    async def test_payment_details(self, client: AsyncClient, auth_headers, gateway):
        gateway.payments['pay_9'] = {'id': 'pay_9', 'status': 'captured', 'amount': 150000}

        response = await client.get('/api/v1/maintenance/payment/pay_9', headers=auth_headers)

        assert response.status_code == 200
        assert response.json()['data']['amount'] == 150000

    @pytest.mark.asyncio
    async def test_payment_details_gateway_error(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/maintenance/payment/pay_missing', headers=auth_headers)

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_webhook_capture_marks_paid(self, client: AsyncClient, auth_headers, bill, gateway, db_session):
        create = await client.post(f'/api/v1/maintenance/{bill.id}/create-order', headers=auth_headers)
        order_id = create.json()['data']['id']
        body = json.dumps({
            'event': 'payment.captured',
            'payload': {'payment': {'entity': {'id': 'pay_w1', 'order_id': order_id, 'status': 'captured'}}},
        }).encode()

        response = await client.post('/api/v1/maintenance/webhook', content=body, headers={
            'Content-Type': 'application/json',
            'X-Razorpay-Signature': sign(gateway.webhook_secret, body),
        })

        assert response.status_code == 200
        assert response.json() == {'status': 'ok'}
        await db_session.refresh(bill)
        assert bill.status.value == 'paid'
        assert bill.razorpay_payment_id == 'pay_w1'

    @pytest.mark.asyncio
    async def test_webhook_order_paid_marks_paid(self, client: AsyncClient, auth_headers, bill, gateway, db_session):
        create = await client.post(f'/api/v1/maintenance/{bill.id}/create-order', headers=auth_headers)
        order_id = create.json()['data']['id']
        body = json.dumps({
            'event': 'order.paid',
            'payload': {'order': {'entity': {'id': order_id, 'status': 'paid'}}},
        }).encode()

        response = await client.post('/api/v1/maintenance/webhook', content=body, headers={
            'Content-Type': 'application/json',
            'X-Razorpay-Signature': sign(gateway.webhook_secret, body),
        })

        assert response.status_code == 200
        await db_session.refresh(bill)
        assert bill.status.value == 'paid'
        assert bill.payment_status.value == 'captured'
        assert bill.razorpay_order_id == order_id

    @pytest.mark.asyncio
    async def test_webhook_payment_failed(self, client: AsyncClient, auth_headers, bill, gateway, db_session):
        create = await client.post(f'/api/v1/maintenance/{bill.id}/create-order', headers=auth_headers)
        order_id = create.json()['data']['id']
        body = json.dumps({
            'event': 'payment.failed',
            'payload': {'payment': {'entity': {
                'id': 'pay_w2', 'order_id': order_id, 'status': 'failed', 'error_description': 'Bank declined'
            }}},
        }).encode()

        response = await client.post('/api/v1/maintenance/webhook', content=body, headers={
            'Content-Type': 'application/json',
            'X-Razorpay-Signature': sign(gateway.webhook_secret, body),
        })

        assert response.status_code == 200
        await db_session.refresh(bill)
        assert bill.status.value == 'pending'
        assert bill.payment_status.value == 'failed'

    @pytest.mark.asyncio
    async def test_webhook_bad_signature(self, client: AsyncClient, gateway):
        response = await client.post('/api/v1/maintenance/webhook', content=b'{}', headers={
            'X-Razorpay-Signature': 'forged',
        })

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_webhook_skipped_without_secret(self, client: AsyncClient, gateway):
        gateway.webhook_secret = ''

        response = await client.post('/api/v1/maintenance/webhook', content=b'{}')

        assert response.status_code == 200
        assert response.json()['status'] == 'skipped'
