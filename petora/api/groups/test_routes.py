# petora/api/groups/test_routes.py


def create_group(client, headers):
    response = client.post('/api/groups', json={"name": "Dog Walkers", "description": "Morning walks around the lake."},
                           headers=headers)
    assert response.status_code == 201
    return response.get_json()


def test_group_join_scenario(client, auth_headers):
    group = create_group(client, auth_headers("alice"))
    assert group["member_count"] == 1
    assert group["member_ids"] == ["alice"]

    joined = client.post(f'/api/groups/{group["id"]}/join', headers=auth_headers("bob")).get_json()
    assert joined["joined"] is True
    assert joined["group"]["member_count"] == 2

    again = client.post(f'/api/groups/{group["id"]}/join', headers=auth_headers("bob")).get_json()
    assert again["joined"] is False
    assert again["group"]["member_count"] == 2


def test_chat_is_members_only(client, auth_headers):
    group = create_group(client, auth_headers("alice"))
    url = f'/api/groups/{group["id"]}/messages'

    assert client.post(url, json={"text": "hi"}, headers=auth_headers("bob")).status_code == 403
    assert client.get(url, headers=auth_headers("bob")).status_code == 403

    client.post(f'/api/groups/{group["id"]}/join', headers=auth_headers("bob"))
    posted = client.post(url, json={"text": "hi"}, headers=auth_headers("bob"))
    assert posted.status_code == 201
    assert posted.get_json()["sender_id"] == "bob"

    messages = client.get(url, headers=auth_headers("alice")).get_json()
    assert [m["text"] for m in messages] == ["hi"]


def test_delete_group_is_admin_only(client, auth_headers, make_user):
    group = create_group(client, auth_headers("alice"))
    make_user("root", is_admin=True)

    assert client.delete(f'/api/groups/{group["id"]}', headers=auth_headers("alice")).status_code == 403
    assert client.delete(f'/api/groups/{group["id"]}', headers=auth_headers("root")).status_code == 204
    assert client.get(f'/api/groups/{group["id"]}').status_code == 404


def test_message_stream_sends_snapshot(client, auth_headers):
    group = create_group(client, auth_headers("alice"))
    client.post(f'/api/groups/{group["id"]}/messages', json={"text": "hello"}, headers=auth_headers("alice"))

    response = client.get(f'/api/groups/{group["id"]}/messages/stream', headers=auth_headers("alice"))
    assert response.status_code == 200
    assert response.mimetype == 'text/event-stream'

    first_event = next(response.response)
    first_event = first_event.decode() if isinstance(first_event, bytes) else first_event
    assert first_event.startswith("event: snapshot\n")
    assert '"text": "hello"' in first_event
    response.close()


def test_non_object_bodies_are_validation_errors(client, auth_headers):
    group = create_group(client, auth_headers("alice"))

    responses = [
        client.post('/api/groups', json=["Dog Walkers"], headers=auth_headers("alice")),
        client.post(f'/api/groups/{group["id"]}/messages', json=["hi"], headers=auth_headers("alice")),
    ]

    for response in responses:
        assert response.status_code == 400
        assert response.get_json()["error_code"] == "VALIDATION_ERROR"
