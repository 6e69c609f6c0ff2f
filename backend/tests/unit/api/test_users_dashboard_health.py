"""
Unit Tests for User Listing, Dashboard Stats and Health Endpoints
"""
import pytest
from httpx import AsyncClient

from app.models.complaint import Complaint, ComplaintCategory
from app.models.flat import Flat, FlatStatus
from app.models.maintenance import BillStatus
from app.models.notice import Notice


class TestListUsers:
    """Test GET /users"""

    @pytest.mark.asyncio
    async def test_admin_lists_members(self, client: AsyncClient, admin_auth_headers, test_user, other_user):
        response = await client.get('/api/v1/users', headers=admin_auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['total'] == 3
        assert 'hashed_password' not in body['items'][0]

    @pytest.mark.asyncio
    async def test_filter_by_role(self, client: AsyncClient, admin_auth_headers, test_user, other_user):
        response = await client.get('/api/v1/users', headers=admin_auth_headers, params={'role': 'resident'})

        ids = {u['id'] for u in response.json()['items']}
        assert ids == {test_user.id, other_user.id}

    @pytest.mark.asyncio
    async def test_search_and_paginate(self, client: AsyncClient, admin_auth_headers, test_user, other_user):
        response = await client.get(
            '/api/v1/users',
            headers=admin_auth_headers,
            params={'search': other_user.email, 'page_size': 1}
        )

        body = response.json()
        assert body['total'] == 1
        assert body['items'][0]['id'] == other_user.id
        assert body['has_next'] is False

    @pytest.mark.asyncio
    async def test_search_wildcards_match_literally(self, client: AsyncClient, admin_auth_headers, make_user):
        underscored = await make_user(full_name='Rao_K', email='raok@example.com', wing='D', flat_no='9')
        await make_user(full_name='RaoXK', email='raoxk@example.com', wing='D', flat_no='10')

        response = await client.get('/api/v1/users', headers=admin_auth_headers, params={'search': 'Rao_K'})
        assert [u['id'] for u in response.json()['items']] == [underscored.id]

        response = await client.get('/api/v1/users', headers=admin_auth_headers, params={'search': '%'})
        assert response.json()['total'] == 0

    @pytest.mark.asyncio
    async def test_residents_forbidden(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/users', headers=auth_headers)

        assert response.status_code == 403


class TestDashboardStats:
    """Test GET /dashboard/stats"""

    async def _seed(self, db_session, test_user, other_user, admin_user, make_bill):
        db_session.add_all([
            Flat(wing='B', flat_no='202', status=FlatStatus.OCCUPIED),
            Flat(wing='C', flat_no='303', status=FlatStatus.VACANT),
            Flat(wing='C', flat_no='304', status=FlatStatus.VACANT),
            Complaint(title='Leak', description='Leak', category=ComplaintCategory.PLUMBING, raised_by=test_user,
                      wing='A', flat_no='101'),
            Complaint(title='Lift', description='Lift stuck', category=ComplaintCategory.ELECTRICAL, raised_by=other_user,
                      wing='B', flat_no='202'),
            Notice(title='AGM', content='Meeting', created_by=admin_user),
            Notice(title='Old', content='Old notice', is_active=False, created_by=admin_user),
        ])
        await db_session.commit()
        await make_bill(test_user)
        await make_bill(test_user, month='February', status=BillStatus.PAID)
        await make_bill(other_user, status=BillStatus.OVERDUE)

    @pytest.mark.asyncio
    async def test_admin_stats(self, client: AsyncClient, db_session, test_user, other_user, admin_user,
                               admin_auth_headers, make_bill):
        await self._seed(db_session, test_user, other_user, admin_user, make_bill)

        response = await client.get('/api/v1/dashboard/stats', headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.json()['data'] == {
            'total_flats': 4,
            'occupied_flats': 2,
            'occupancy_rate': 50.0,
            'pending_complaints': 2,
            'unpaid_maintenance': 2,
            'active_notices': 1,
        }

    @pytest.mark.asyncio
    async def test_resident_stats_are_scoped(self, client: AsyncClient, db_session, test_user, other_user, admin_user,
                                             auth_headers, make_bill):
        await self._seed(db_session, test_user, other_user, admin_user, make_bill)

        response = await client.get('/api/v1/dashboard/stats', headers=auth_headers)

        data = response.json()['data']
        assert data['pending_complaints'] == 1
        assert data['unpaid_maintenance'] == 1
        assert data['total_flats'] == 4

    @pytest.mark.asyncio
    async def test_empty_society(self, client: AsyncClient, admin_auth_headers):
        response = await client.get('/api/v1/dashboard/stats', headers=admin_auth_headers)

        data = response.json()['data']
        assert data['total_flats'] == 0
        assert data['occupancy_rate'] == 0.0


class TestHealth:
    """Test health endpoints"""

    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient):
        response = await client.get('/api/v1/health')

        assert response.status_code == 200
        assert response.json() == {'success': True, 'message': 'Server is running successfully'}

    @pytest.mark.asyncio
    async def test_readiness(self, client: AsyncClient):
        response = await client.get('/api/v1/health/ready')

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'ready'
        assert body['checks']['database']['status'] == 'healthy'
        assert body['checks']['integrations']['payments'] == 'not_configured'

    @pytest.mark.asyncio
    async def test_unknown_route_is_json_404(self, client: AsyncClient):
        response = await client.get('/api/v1/does-not-exist')

        assert response.status_code == 404
        assert response.json()['detail'] == 'Not Found'

    @pytest.mark.asyncio
    async def test_security_headers(self, client: AsyncClient):
        response = await client.get('/api/v1/health')

        assert response.headers['X-Frame-Options'] == 'DENY'
        assert 'X-Request-ID' in response.headers
