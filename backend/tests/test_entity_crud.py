"""End-to-end CRUD flows against the SQLite database."""

import json
import logging
import uuid

from fastapi.testclient import TestClient

from emr_api.main import app
from conftest import make_caller

client = TestClient(app)


def _create(path, body, caller):
    r = client.post(path, json=body, headers=caller.headers)
    assert r.status_code == 200, r.text
    return r.json()['id']


def test_generic_lifecycle(caller):
    generic_id = _create('/api/generic', {'item_name': 'Paracetamol'}, caller)

    r = client.get(f'/api/generic/{generic_id}', params={'fields': 'ItemName'}, headers=caller.headers)
    assert r.status_code == 200
    assert r.json() == {'id': generic_id, 'item_name': 'Paracetamol'}

    # without fields only the id comes back
    r = client.get(f'/api/generic/{generic_id}', headers=caller.headers)
    assert r.json() == {'id': generic_id}

    r = client.put(f'/api/generic/{generic_id}', json={'id': generic_id, 'item_name': 'Acetaminophen'}, headers=caller.headers)
    assert r.status_code == 200
    assert r.json() == {'status': True}

    ops = [{'op': 'replace', 'path': '/item_name', 'value': 'Ibuprofen'}]
    r = client.patch(f'/api/generic/{generic_id}', json=ops, headers=caller.headers)
    assert r.status_code == 200

    r = client.get(f'/api/generic/{generic_id}', params={'fields': 'itemName,tenantId'}, headers=caller.headers)
    assert r.json() == {'id': generic_id, 'item_name': 'Ibuprofen', 'tenant_id': str(caller.tenant_id)}

    r = client.delete(f'/api/generic/{generic_id}', headers=caller.headers)
    assert r.status_code == 200
    assert r.json() == {'status': True}

    r = client.get(f'/api/generic/{generic_id}', headers=caller.headers)
    assert r.status_code == 404
    assert r.json()['detail'] == 'No data found!'


def test_client_supplied_id_is_kept_and_duplicates_rejected(caller):
    wanted = str(uuid.uuid4())
    assert _create('/api/currency', {'id': wanted, 'code': 'INR'}, caller) == wanted
    r = client.post('/api/currency', json={'id': wanted, 'code': 'USD'}, headers=caller.headers)
    assert r.status_code == 400


def test_rows_are_invisible_to_other_tenants(caller, other_caller):
    uom_id = _create('/api/uom', {'name': 'Milligram', 'code': 'MG'}, caller)

    assert client.get(f'/api/uom/{uom_id}', headers=other_caller.headers).status_code == 404
    assert client.get('/api/uom', headers=other_caller.headers).json() == []
    assert client.delete(f'/api/uom/{uom_id}', headers=other_caller.headers).status_code == 404
    r = client.put(f'/api/uom/{uom_id}', json={'id': uom_id, 'name': 'Hijacked'}, headers=other_caller.headers)
    assert r.status_code == 404
    r = client.patch(f'/api/uom/{uom_id}', json=[{'op': 'replace', 'path': '/name', 'value': 'x'}], headers=other_caller.headers)
    assert r.status_code == 404

    rows = client.get('/api/uom', headers=caller.headers).json()
    assert [row['name'] for row in rows] == ['Milligram']


def test_put_preserves_creation_stamps(caller):
    category_id = _create('/api/productcategory', {'name': 'Analgesics'}, caller)
    before = client.get(f'/api/productcategory/{category_id}', params={'fields': 'CreatedBy,CreatedOn'}, headers=caller.headers).json()
    assert before['created_by'] == str(caller.user_id)
    assert before['created_on'] is not None

    editor = make_caller(tenant_id=caller.tenant_id)
    body = {'id': category_id, 'name': 'Pain relief', 'created_by': str(uuid.uuid4()), 'created_on': None}
    r = client.put(f'/api/productcategory/{category_id}', json=body, headers=editor.headers)
    assert r.status_code == 200

    fields = 'Name,CreatedBy,CreatedOn,UpdatedBy,UpdatedOn'
    after = client.get(f'/api/productcategory/{category_id}', params={'fields': fields}, headers=caller.headers).json()
    assert after['name'] == 'Pain relief'
    assert after['created_by'] == before['created_by']
    assert after['created_on'] == before['created_on']
    assert after['updated_by'] == str(editor.user_id)
    assert after['updated_on'] is not None


def test_list_filters_search_sort_and_paging(caller):
    for number, amount, status in [('INV-001', 120.0, 'Paid'), ('INV-002', 80.5, 'Open'), ('INV-003', 300.0, 'Paid'), ('XYZ-004', 15.0, 'Void')]:
        _create('/api/invoice', {'invoice_number': number, 'total_amount': amount, 'status': status}, caller)

    def numbers(**params):
        r = client.get('/api/invoice', params=params, headers=caller.headers)
        assert r.status_code == 200, r.text
        return [row['invoice_number'] for row in r.json()]

    paid = json.dumps([{'PropertyName': 'Status', 'Operator': 'Equal', 'Value': 'Paid'}])
    assert numbers(filters=paid, sortField='InvoiceNumber') == ['INV-001', 'INV-003']

    big = json.dumps([{'PropertyName': 'totalAmount', 'Operator': 'GreaterThanOrEqual', 'Value': '100'}])
    assert numbers(filters=big, sortField='TotalAmount', sortOrder='DESC') == ['INV-003', 'INV-001']

    some = json.dumps([{'PropertyName': 'Status', 'Operator': 'In', 'Value': ['Open', 'Void']}])
    assert numbers(filters=some, sortField='InvoiceNumber') == ['INV-002', 'XYZ-004']

    assert numbers(searchTerm='inv-', sortField='InvoiceNumber') == ['INV-001', 'INV-002', 'INV-003']
    assert numbers(searchTerm='void') == ['XYZ-004']

    assert numbers(sortField='InvoiceNumber', pageSize=2, pageNumber=1) == ['INV-001', 'INV-002']
    assert numbers(sortField='InvoiceNumber', pageSize=2, pageNumber=2) == ['INV-003', 'XYZ-004']
    assert numbers(sortField='InvoiceNumber', pageSize=2, pageNumber=3) == []


def test_list_rejects_bad_sort_and_filter(caller):
    r = client.get('/api/invoice', params={'sortField': 'InvoiceNumber', 'sortOrder': 'sideways'}, headers=caller.headers)
    assert r.status_code == 400
    assert r.json()['detail'] == "Invalid sort order. Use 'asc' or 'desc'"

    r = client.get('/api/invoice', params={'sortField': 'Colour'}, headers=caller.headers)
    assert r.status_code == 400

    bad_op = json.dumps([{'PropertyName': 'Status', 'Operator': 'Resembles', 'Value': 'x'}])
    r = client.get('/api/invoice', params={'filters': bad_op}, headers=caller.headers)
    assert r.status_code == 400

    bad_value = json.dumps([{'PropertyName': 'TotalAmount', 'Operator': 'Equal', 'Value': 'lots'}])
    r = client.get('/api/invoice', params={'filters': bad_value}, headers=caller.headers)
    assert r.status_code == 400


def test_patch_cannot_move_row_to_another_tenant(caller, other_caller):
    visit_id = _create('/api/visit', {'visit_type': 'OPD', 'status': 'Open'}, caller)
    ops = [
        {'op': 'replace', 'path': '/tenant_id', 'value': str(other_caller.tenant_id)},
        {'op': 'replace', 'path': '/status', 'value': 'Closed'},
    ]
    r = client.patch(f'/api/visit/{visit_id}', json=ops, headers=caller.headers)
    assert r.status_code == 200
    row = client.get(f'/api/visit/{visit_id}', params={'fields': 'Status,TenantId'}, headers=caller.headers).json()
    assert row == {'id': visit_id, 'status': 'Closed', 'tenant_id': str(caller.tenant_id)}


def test_patch_failures_are_bad_requests(caller):
    visit_id = _create('/api/visit', {'status': 'Open'}, caller)

    failing_test = [{'op': 'test', 'path': '/status', 'value': 'Closed'}]
    r = client.patch(f'/api/visit/{visit_id}', json=failing_test, headers=caller.headers)
    assert r.status_code == 400

    missing_path = [{'op': 'remove', 'path': '/no_such_field'}]
    r = client.patch(f'/api/visit/{visit_id}', json=missing_path, headers=caller.headers)
    assert r.status_code == 400

    wrong_type = [{'op': 'replace', 'path': '/visit_date', 'value': 'yesterday-ish'}]
    r = client.patch(f'/api/visit/{visit_id}', json=wrong_type, headers=caller.headers)
    assert r.status_code == 400

    row = client.get(f'/api/visit/{visit_id}', params={'fields': 'Status'}, headers=caller.headers).json()
    assert row['status'] == 'Open'


def test_patch_accepts_pascal_case_paths(caller):
    generic_id = _create('/api/generic', {'item_name': 'Paracetamol'}, caller)
    r = client.patch(f'/api/generic/{generic_id}', json=[{'op': 'add', 'path': '/ItemName', 'value': 'Naproxen'}], headers=caller.headers)
    assert r.status_code == 200
    row = client.get(f'/api/generic/{generic_id}', params={'fields': 'ItemName'}, headers=caller.headers).json()
    assert row['item_name'] == 'Naproxen'

    ops = [{'op': 'copy', 'from': '/VisitType', 'path': '/status'}]
    visit_id = _create('/api/visit', {'visit_type': 'IPD', 'status': 'Open'}, caller)
    r = client.patch(f'/api/visit/{visit_id}', json=ops, headers=caller.headers)
    assert r.status_code == 200
    row = client.get(f'/api/visit/{visit_id}', params={'fields': 'Status'}, headers=caller.headers).json()
    assert row['status'] == 'IPD'


def test_patch_unknown_property_is_rejected(caller):
    generic_id = _create('/api/generic', {'item_name': 'Paracetamol'}, caller)
    r = client.patch(f'/api/generic/{generic_id}', json=[{'op': 'add', 'path': '/Colour', 'value': 'red'}], headers=caller.headers)
    assert r.status_code == 400
    assert "Unknown property 'colour'" in r.json()['detail']
    row = client.get(f'/api/generic/{generic_id}', params={'fields': 'ItemName'}, headers=caller.headers).json()
    assert row['item_name'] == 'Paracetamol'


def test_search_and_text_filters_treat_wildcards_literally():
    owner = make_caller()
    for name in ('Aspirin', 'A_B', '50% Dextrose'):
        _create('/api/generic', {'item_name': name}, owner)

    def names(**params):
        r = client.get('/api/generic', params=params, headers=owner.headers)
        assert r.status_code == 200, r.text
        return sorted(row['item_name'] for row in r.json())

    assert names(searchTerm='_') == ['A_B']
    assert names(searchTerm='%') == ['50% Dextrose']
    assert names(searchTerm='a_b') == ['A_B']

    contains = json.dumps([{'PropertyName': 'ItemName', 'Operator': 'Contains', 'Value': '%'}])
    assert names(filters=contains) == ['50% Dextrose']
    starts = json.dumps([{'PropertyName': 'ItemName', 'Operator': 'StartsWith', 'Value': '_'}])
    assert names(filters=starts) == []
    ends = json.dumps([{'PropertyName': 'ItemName', 'Operator': 'EndsWith', 'Value': '_b'}])
    assert names(filters=ends) == ['A_B']


def test_text_filter_on_non_text_property_is_rejected(caller):
    contains = json.dumps([{'PropertyName': 'Id', 'Operator': 'Contains', 'Value': str(uuid.uuid4())}])
    r = client.get('/api/generic', params={'filters': contains}, headers=caller.headers)
    assert r.status_code == 400
    assert 'only applies to text properties' in r.json()['detail']


def test_delete_is_logged_once(caller, caplog):
    generic_id = _create('/api/generic', {'item_name': 'Cetirizine'}, caller)
    caplog.set_level(logging.DEBUG, logger='emr_api')
    assert client.delete(f'/api/generic/{generic_id}', headers=caller.headers).status_code == 200
    lines = [rec.getMessage() for rec in caplog.records if rec.getMessage().startswith('delete')]
    assert lines == [f'deleted Generic id={generic_id} tenant={caller.tenant_id}']


def test_every_entity_is_routed(caller):
    from emr_api.models import ENTITY_MODELS

    for name in ENTITY_MODELS:
        r = client.get(f'/api/{name.lower()}', headers=caller.headers)
        assert r.status_code == 200, name


def test_health_and_request_id():
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json()['status'] == 'ok'
    assert 'X-Request-ID' in r.headers
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.headers['X-Request-ID'] == 'abc123'
