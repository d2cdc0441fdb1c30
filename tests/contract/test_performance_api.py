"""Contract Tests: Admin Performance Endpoints

/api/admin/performance requires the X-Admin-Token header in production.
"""

import pytest

pytestmark = pytest.mark.contract


class TestAdminAccess:
    def test_missing_token_is_401(self, client):
        response = client.get('/api/admin/performance')

        assert response.status_code == 401
        data = response.json()
        assert data['success'] is False
        assert data['message'] == 'Authentication required'

    def test_wrong_token_is_403(self, client):
        response = client.get('/api/admin/performance', headers={'X-Admin-Token': 'guess'})

        assert response.status_code == 403
        assert response.json()['message'] == 'Insufficient permissions'

    def test_development_without_configured_token_is_open(self, dev_client):
        assert dev_client.get('/api/admin/performance').status_code == 200


class TestPerformanceStats:
    def test_stats_snapshot(self, client, admin_headers, monitor, clock):
        monitor.start_timer('q-1', 'dynamodb_query', {'table': 'recipes'})
        clock.advance_ms(650)
        monitor.end_timer('q-1')

        response = client.get('/api/admin/performance', headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['total_operations'] == 1
        assert data['operation_stats']['dynamodb_query'] == {
            'total': 1,
            'success': 1,
            'errors': 0,
            'success_rate': 1.0,
        }
        assert data['slow_query_stats']['dynamodb_query']['count'] == 1
        assert data['recent_slow_queries'][0]['metadata'] == {'table': 'recipes'}
        # The stats request itself is still running
        assert data['current_active_operations'] == 1

    def test_active_operations(self, client, admin_headers, monitor, clock):
        monitor.start_timer('scan-1', 'dynamodb_scan')
        clock.advance_ms(2000)

        data = client.get('/api/admin/performance/active', headers=admin_headers).json()

        assert data[0]['id'] == 'scan-1'
        assert data[0]['duration_ms'] == pytest.approx(2000)
        assert data[1]['type'] == 'api_request'

    def test_slow_operations(self, client, admin_headers, monitor, clock):
        monitor.start_timer('c-1', 'cache_operation')
        clock.advance_ms(75)
        monitor.end_timer('c-1')

        data = client.get('/api/admin/performance/slow', headers=admin_headers).json()

        assert [op['id'] for op in data] == ['c-1']

    def test_thresholds(self, client, admin_headers):
        data = client.get('/api/admin/performance/thresholds', headers=admin_headers).json()

        assert data['thresholds_ms']['dynamodb_query'] == 500
        assert data['default_ms'] == 1000

    def test_reset(self, client, admin_headers, monitor):
        client.get('/api/health')
        client.get('/api/health')

        response = client.post('/api/admin/performance/reset', headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['status'] == 'ok'
        data = client.get('/api/admin/performance', headers=admin_headers).json()
        assert data['total_operations'] == 0
        assert data['slow_query_stats'] == {}
