import pytest


def register_and_login(client, name):
    email = f"{name}@example.com"
    response = client.post('/api/register', json={'username': name, 'email': email, 'password': 'secret123'})
    assert response.status_code == 200
    otp = client.application.extensions['otp_sender'].sent[email]
    response = client.post('/api/verify_otp', json={'email': email, 'otp': otp})
    assert response.status_code == 201
    response = client.post('/api/login', json={'username_or_email': name, 'password': 'secret123'})
    assert response.status_code == 200
    return response.get_json()['account']


@pytest.fixture
def alice_client(app):
    client = app.test_client()
    client.account = register_and_login(client, 'alice')
    return client


@pytest.fixture
def bob_client(app):
    client = app.test_client()
    client.account = register_and_login(client, 'bob')
    return client


@pytest.fixture
def shared_group(alice_client, bob_client):
    response = alice_client.post('/api/group', json={'name': 'Trip'})
    assert response.status_code == 201
    group = response.get_json()['group']

    response = alice_client.post(f"/api/group/{group['id']}/invitation", json={'account_id': bob_client.account['id']})
    assert response.status_code == 201
    invitation = response.get_json()['invitation']

    response = bob_client.post(f"/api/invitation/{invitation['id']}/accept")
    assert response.status_code == 200

    members = alice_client.get(f"/api/group/{group['id']}/members").get_json()['members']
    by_account = {member['account_id']: member['id'] for member in members}
    return {
        'id': group['id'],
        'alice': by_account[alice_client.account['id']],
        'bob': by_account[bob_client.account['id']],
    }


def test_requests_need_a_token(client):
    response = client.get('/api/me')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Unauthenticated'


def test_login_sets_cookie_and_logout_clears_it(alice_client):
    response = alice_client.get('/api/me')
    assert response.status_code == 200
    assert response.get_json()['account']['username'] == 'alice'

    alice_client.post('/api/logout')
    assert alice_client.get('/api/me').status_code == 401


def test_wrong_password(client):
    register_and_login(client, 'alice')
    response = client.post('/api/login', json={'username_or_email': 'alice', 'password': 'nope'})
    assert response.status_code == 401


def test_duplicate_registration(client):
    register_and_login(client, 'alice')
    response = client.post('/api/register', json={
        'username': 'alice2', 'email': 'alice@example.com', 'password': 'secret123',
    })
    assert response.status_code == 409
    assert response.get_json() == {'message': 'Email should be unique', 'error': 'DuplicateAccount'}


def test_search_accounts(alice_client, bob_client):
    response = alice_client.get('/api/accounts/search?filter=BO')
    assert [account['username'] for account in response.get_json()['accounts']] == ['bob']


def test_entry_balance_and_settlement_flow(alice_client, bob_client, shared_group):
    group_id = shared_group['id']
    response = alice_client.post(f"/api/group/{group_id}/entry", json={
        'payer_id': shared_group['alice'],
        'participants': [shared_group['alice'], shared_group['bob']],
        'amount': '80.00',
        'category': 'travel',
        'title': 'Train tickets',
        'date': '2026-06-01',
    })
    assert response.status_code == 201
    entry = response.get_json()['entry']
    assert entry['amount'] == '80.00'
    assert entry['share_details'] == [
        {'member_id': shared_group['alice'], 'amount': '40.00'},
        {'member_id': shared_group['bob'], 'amount': '40.00'},
    ]

    balances = bob_client.get(f"/api/group/{group_id}/balances").get_json()
    assert balances['balances'] == [{
        'group_id': group_id, 'debtor_id': shared_group['bob'],
        'creditor_id': shared_group['alice'], 'amount': '40.00',
    }]
    assert balances['positions'] == {str(shared_group['alice']): '40.00', str(shared_group['bob']): '-40.00'}

    plan = bob_client.get(f"/api/group/{group_id}/settle_up").get_json()['settlements']
    assert plan == [{'creditor_id': shared_group['alice'], 'debtor_id': shared_group['bob'], 'amount': '40.00'}]

    response = bob_client.post(f"/api/group/{group_id}/settlement",
                               json={'payee_id': shared_group['alice'], 'amount': '50'})
    assert response.status_code == 409
    assert response.get_json()['error'] == 'OverSettlement'

    response = bob_client.post(f"/api/group/{group_id}/settlement",
                               json={'payee_id': shared_group['alice'], 'amount': '40'})
    assert response.status_code == 201

    assert bob_client.get(f"/api/group/{group_id}/balances").get_json()['balances'] == []
    assert len(alice_client.get(f"/api/group/{group_id}/settlements").get_json()['settlements']) == 1

    total = alice_client.get(f"/api/group/{group_id}/total_expenditure").get_json()
    assert total == {'total_expenditure': '80.00'}


def test_edit_and_delete_entry(alice_client, bob_client, shared_group):
    group_id = shared_group['id']
    entry = alice_client.post(f"/api/group/{group_id}/entry", json={
        'payer_id': shared_group['bob'], 'participants': [shared_group['alice']],
        'amount': '15', 'category': 'food', 'title': 'Pizza',
    }).get_json()['entry']

    response = bob_client.put(f"/api/group/{group_id}/entry/{entry['id']}", json={'amount': '9.99'})
    assert response.status_code == 200
    balances = alice_client.get(f"/api/group/{group_id}/balances").get_json()['balances']
    assert balances[0]['amount'] == '9.99'

    response = bob_client.delete(f"/api/group/{group_id}/entry/{entry['id']}")
    assert response.status_code == 200
    assert alice_client.get(f"/api/group/{group_id}/entries").get_json() == {'entries': []}
    assert alice_client.get(f"/api/group/{group_id}/entry/{entry['id']}").status_code == 404


def test_invalid_entry_payload(alice_client, shared_group):
    response = alice_client.post(f"/api/group/{shared_group['id']}/entry", json={
        'payer_id': shared_group['alice'], 'participants': [],
        'amount': '10', 'category': 'food', 'title': 'Nothing',
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'InvalidAmount'


def test_outsider_is_forbidden(app, shared_group):
    carol = app.test_client()
    register_and_login(carol, 'carol')

    response = carol.get(f"/api/group/{shared_group['id']}/balances")
    assert response.status_code == 403
    assert response.get_json()['error'] == 'NotAMember'


def test_invitation_listing_and_duplicates(alice_client, bob_client):
    group = alice_client.post('/api/group', json={'name': 'Flat'}).get_json()['group']
    url = f"/api/group/{group['id']}/invitation"

    assert alice_client.post(url, json={'account_id': bob_client.account['id']}).status_code == 201
    response = alice_client.post(url, json={'account_id': bob_client.account['id']})
    assert response.status_code == 409
    assert response.get_json()['error'] == 'DuplicateInvitation'

    pending = bob_client.get('/api/invitations').get_json()['invitations']
    assert [invitation['group_name'] for invitation in pending] == ['Flat']

    response = bob_client.post(f"/api/invitation/{pending[0]['id']}/reject")
    assert response.get_json()['invitation']['status'] == 'REJECTED'
    assert alice_client.post(url, json={'account_id': bob_client.account['id']}).status_code == 201

    assert bob_client.get('/api/invitations?status=bogus').status_code == 400


def test_group_management(alice_client, bob_client, shared_group):
    group_id = shared_group['id']
    response = bob_client.put(f"/api/group/{group_id}/update_group_name", json={'new_group_name': 'Porto'})
    assert response.get_json()['group']['name'] == 'Porto'

    assert bob_client.delete(f"/api/group/{group_id}").status_code == 403
    assert [group['name'] for group in bob_client.get('/api/groups').get_json()['groups']] == ['Porto']

    assert bob_client.post(f"/api/group/{group_id}/leave").status_code == 200
    assert bob_client.get('/api/groups').get_json() == {'groups': []}

    assert alice_client.delete(f"/api/group/{group_id}").status_code == 200
    assert alice_client.get(f"/api/group/{group_id}").status_code == 404


def test_personal_transactions(alice_client):
    response = alice_client.post('/api/transaction', json={
        'type': 'income', 'amount': '500', 'category': 'salary', 'title': 'Pay', 'date': '2026-02-01',
    })
    assert response.status_code == 201
    alice_client.post('/api/transaction', json={
        'type': 'expense', 'amount': '120.25', 'category': 'food', 'title': 'Groceries', 'date': '2026-02-03',
    })

    history = alice_client.get('/api/history').get_json()['history']
    assert history == [{'year': 2026, 'month': 2, 'income': '500.00', 'expense': '120.25', 'balance': '379.75'}]

    me = alice_client.get('/api/me').get_json()['account']
    assert me['total_balance'] == '379.75'

    transactions = alice_client.get('/api/transactions?year=2026&month=2').get_json()['transactions']
    assert [transaction['title'] for transaction in transactions] == ['Groceries', 'Pay']


def test_wrong_otp_creates_no_account(client):
    client.post('/api/register', json={'username': 'dave', 'email': 'dave@example.com', 'password': 'secret123'})

    response = client.post('/api/verify_otp', json={'email': 'dave@example.com', 'otp': 'abcdef'})
    assert response.status_code == 401
    assert response.get_json()['error'] == 'InvalidOtp'

    response = client.post('/api/login', json={'username_or_email': 'dave', 'password': 'secret123'})
    assert response.get_json() == {'message': 'You need to register first', 'error': 'Unauthenticated'}


def test_oversized_amounts_are_bad_requests(alice_client):
    for amount in ('1e30', '9' * 40, '10000000000'):
        response = alice_client.post('/api/transaction', json={
            'type': 'expense', 'amount': amount, 'category': 'food', 'title': 'Feast',
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'InvalidAmount'


def test_trailing_junk_in_date_is_a_bad_request(alice_client):
    response = alice_client.post('/api/transaction', json={
        'type': 'expense', 'amount': '5', 'category': 'food', 'title': 'Snack', 'date': '2026-03-14garbage',
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'InvalidPayload'


def test_search_wildcards_are_literal(alice_client, bob_client):
    assert alice_client.get('/api/accounts/search?filter=_').get_json()['accounts'] == []
    assert alice_client.get('/api/accounts/search?filter=%25').get_json()['accounts'] == []
