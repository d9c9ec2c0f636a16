from fastapi import status

from tests.conf_tests import (  # pylint: disable=unused-import
    admin_headers,
    auth_headers,
    clear_db,
    client,
    director_headers,
    test_db,
    test_location,
    test_room,
    test_user,
)

# pylint: disable=redefined-outer-name

TEST_LOCATION_DATA = {
    "name": "Riverside Campus",
    "description": "Building by the river",
    "latitude": 38.7223,
    "longitude": -9.1393,
}


def test_create_location(director_headers):
    response = client.post("/locations/", json=TEST_LOCATION_DATA, headers=director_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["name"] == TEST_LOCATION_DATA["name"]
    assert data["latitude"] == TEST_LOCATION_DATA["latitude"]
    assert "id" in data


def test_create_location_as_guest(auth_headers):
    response = client.post("/locations/", json=TEST_LOCATION_DATA, headers=auth_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_create_location_without_name(director_headers):
    response = client.post("/locations/", json={"name": ""}, headers=director_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "name" in response.json()["errors"]


def test_get_locations(test_location, auth_headers):
    response = client.get("/locations/", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert [location["name"] for location in response.json()] == ["Main Building"]


def test_get_location_rooms(test_room, test_location, auth_headers):
    response = client.get(f"/locations/{test_location.id}/rooms", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert [room["id"] for room in response.json()] == [test_room.id]


def test_update_location(test_location, director_headers):
    response = client.put(
        f"/locations/{test_location.id}", json={"description": "Head office, 3 floors"}, headers=director_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["description"] == "Head office, 3 floors"
    assert response.json()["name"] == "Main Building"


def test_delete_location_with_rooms(test_room, test_location, admin_headers):
    response = client.delete(f"/locations/{test_location.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "location_id" in response.json()["errors"]


def test_delete_location(test_location, director_headers, admin_headers):
    assert client.delete(f"/locations/{test_location.id}", headers=director_headers).status_code == 403

    response = client.delete(f"/locations/{test_location.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get(f"/locations/{test_location.id}", headers=admin_headers).status_code == 404
