"""
Tests for location CRUD, the hierarchy view and the CSV import.
"""
from sqlmodel import select

from fieldservice.models import AuditLog, Location, LocationService, Service, ServiceRecord

CSV_DATA = (
    "city,bairro,rua,lat,lng,observations\n"
    "Cidade A,Centro,,-23.5,-46.6,\n"
    "Cidade A,Centro,Rua 1,,,calçada estreita\n"
    "Cidade A,Centro,Rua 2,,,\n"
    "Cidade B,Jardim,,,,\n"
    "Cidade B,Jardim,Rua 3,,,\n"
    "Cidade B,Sem Grupo,Rua Perdida,,,\n"
).encode("utf-8")


def _upload(client, headers, data=CSV_DATA):
    return client.post(
        "/api/locations/import",
        headers=headers,
        files={"file": ("locais.csv", data, "text/csv")},
    )


class TestLocationEndpoints:

    def test_list_requires_auth(self, client):
        response = client.get("/api/locations")
        assert response.status_code == 401

    def test_create_with_services(self, client, session, auth_headers, seed_service):
        response = client.post(
            "/api/locations",
            headers=auth_headers,
            json={
                "contractGroup": "Bairro Centro",
                "name": "Praça da Sé",
                "lat": -23.55,
                "lng": -46.63,
                "services": [{"serviceId": seed_service.id, "measurement": 350.5}],
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["contractGroup"] == "Bairro Centro"
        assert data["isGroup"] is False
        assert data["services"][0]["name"] == "Roçada"
        assert data["services"][0]["measurement"] == 350.5
        assert data["services"][0]["unit"]["symbol"] == "m²"

        actions = [a.action for a in session.exec(select(AuditLog)).all()]
        assert actions == ["CREATE_LOCATION"]

    def test_create_rejects_duplicate_service(self, client, auth_headers, seed_service):
        response = client.post(
            "/api/locations",
            headers=auth_headers,
            json={
                "contractGroup": "X",
                "name": "Rua",
                "services": [
                    {"serviceId": seed_service.id, "measurement": 1},
                    {"serviceId": seed_service.id, "measurement": 2},
                ],
            },
        )
        assert response.status_code == 400

    def test_create_rejects_non_positive_measurement(self, client, auth_headers, seed_service):
        response = client.post(
            "/api/locations",
            headers=auth_headers,
            json={"contractGroup": "X", "name": "Rua", "services": [{"serviceId": seed_service.id, "measurement": 0}]},
        )
        assert response.status_code == 422

    def test_group_cannot_have_parent(self, client, auth_headers, make_location):
        group = make_location("X", "Centro", is_group=True)
        response = client.post(
            "/api/locations",
            headers=auth_headers,
            json={"contractGroup": "X", "name": "Sub", "isGroup": True, "parentId": group.id},
        )
        assert response.status_code == 400

    def test_parent_must_be_group(self, client, auth_headers, make_location):
        plain = make_location("X", "Rua")
        response = client.post(
            "/api/locations",
            headers=auth_headers,
            json={"contractGroup": "X", "name": "Outra", "parentId": plain.id},
        )
        assert response.status_code == 400

    def test_update_replaces_service_set(self, client, session, auth_headers, seed_service, make_location):
        other = Service(name="Varrição Manual", unit_id=seed_service.unit_id)
        session.add(other)
        session.commit()
        loc = make_location("X", "Rua", services=[(seed_service.id, 100)])

        response = client.put(
            f"/api/locations/{loc.id}",
            headers=auth_headers,
            json={"name": "Rua Nova", "services": [{"serviceId": other.id, "measurement": 40}]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Rua Nova"
        assert [s["serviceId"] for s in data["services"]] == [other.id]

        session.expire_all()
        rows = session.exec(select(LocationService)).all()
        assert [(r.service_id, r.measurement) for r in rows] == [(other.id, 40)]

    def test_update_same_service_new_measurement(self, client, session, auth_headers, seed_service, make_location):
        loc = make_location("X", "Rua", services=[(seed_service.id, 100)])
        response = client.put(
            f"/api/locations/{loc.id}",
            headers=auth_headers,
            json={"services": [{"serviceId": seed_service.id, "measurement": 120}]},
        )
        assert response.status_code == 200
        assert response.json()["services"][0]["measurement"] == 120

    def test_update_without_services_keeps_them(self, client, auth_headers, seed_service, make_location):
        loc = make_location("X", "Rua", services=[(seed_service.id, 100)])
        response = client.put(f"/api/locations/{loc.id}", headers=auth_headers, json={"observations": "ok"})
        assert response.status_code == 200
        assert len(response.json()["services"]) == 1

    def test_update_rejects_null_for_required_fields(self, client, session, auth_headers, make_location):
        loc = make_location("X", "Rua", is_group=False)
        for body in ({"name": None}, {"name": "   "}, {"isGroup": None}, {"contractGroup": None}):
            response = client.put(f"/api/locations/{loc.id}", headers=auth_headers, json=body)
            assert response.status_code == 400, body

        session.expire_all()
        kept = session.get(Location, loc.id)
        assert (kept.name, kept.is_group, kept.city) == ("Rua", False, "X")
        assert session.exec(select(AuditLog)).all() == []

    def test_update_null_clears_optional_fields(self, client, auth_headers, make_location):
        loc = make_location("X", "Rua")
        response = client.put(
            f"/api/locations/{loc.id}", headers=auth_headers, json={"lat": None, "observations": None}
        )
        assert response.status_code == 200
        assert response.json()["lat"] is None

    def test_delete_detaches_records_and_children(self, client, session, auth_headers, operator_user,
                                                  make_location, make_record):
        group = make_location("X", "Centro", is_group=True)
        child = make_location("X", "Rua", parent_id=group.id)
        rec = make_record("X", operator_user, location_id=group.id, location_name="Centro")

        response = client.delete(f"/api/locations/{group.id}", headers=auth_headers)
        assert response.status_code == 204

        session.expire_all()
        assert session.get(Location, group.id) is None
        assert session.get(Location, child.id).parent_id is None
        kept = session.get(ServiceRecord, rec.id)
        assert kept.location_id is None
        assert kept.location_name == "Centro"

    def test_get_not_found(self, client, auth_headers):
        response = client.get("/api/locations/9999", headers=auth_headers)
        assert response.status_code == 404

    def test_tree(self, client, auth_headers, make_location):
        group = make_location("X", "Centro", is_group=True)
        make_location("X", "Rua 1", parent_id=group.id)
        make_location("Y", "Rua Estrangeira", parent_id=group.id)
        make_location("X", "Avulsa")

        response = client.get("/api/locations/tree", headers=auth_headers)
        assert response.status_code == 200
        roots = {n["name"]: n for n in response.json()}
        assert set(roots) == {"Centro", "Avulsa"}
        children = {c["name"]: c for c in roots["Centro"]["children"]}
        assert children["Rua 1"]["cityMismatch"] is False
        assert children["Rua Estrangeira"]["cityMismatch"] is True


class TestLocationImport:

    def test_import_builds_hierarchy(self, client, session, auth_headers):
        response = _upload(client, auth_headers)
        assert response.status_code == 200
        report = response.json()
        assert report["groupsCreated"] == 2
        assert report["membersCreated"] == 3
        assert len(report["warnings"]) == 1
        assert "Rua Perdida" in report["warnings"][0]

        locations = session.exec(select(Location)).all()
        groups = {loc.id: loc for loc in locations if loc.is_group}
        members = [loc for loc in locations if not loc.is_group]
        assert {g.name for g in groups.values()} == {"Centro", "Jardim"}
        for member in members:
            assert member.parent_id in groups
            assert groups[member.parent_id].city == member.city
        rua1 = next(m for m in members if m.name == "Rua 1")
        assert rua1.observations == "calçada estreita"

    def test_import_is_idempotent(self, client, session, auth_headers):
        def snapshot():
            session.expire_all()
            locations = session.exec(select(Location)).all()
            by_id = {loc.id: loc for loc in locations}
            return sorted(
                (loc.city, loc.name, loc.is_group, by_id[loc.parent_id].name if loc.parent_id else None)
                for loc in locations
            )

        assert _upload(client, auth_headers).status_code == 200
        first = snapshot()
        assert _upload(client, auth_headers).status_code == 200
        assert snapshot() == first

    def test_import_detaches_existing_records(self, client, session, auth_headers, operator_user,
                                              make_location, make_record):
        old = make_location("Cidade A", "Antiga")
        rec = make_record("Cidade A", operator_user, location_id=old.id, location_name="Antiga")

        assert _upload(client, auth_headers).status_code == 200

        session.expire_all()
        assert "Antiga" not in {loc.name for loc in session.exec(select(Location)).all()}
        assert session.get(ServiceRecord, rec.id).location_id is None

    def test_import_accepts_bom_and_portuguese_headers(self, client, auth_headers):
        data = "\ufeffcidade,bairro,rua,lat,lng,observações\nCidade C,Vila,,,,\nCidade C,Vila,Rua 9,,,\n"
        response = _upload(client, auth_headers, data.encode("utf-8"))
        assert response.status_code == 200
        assert response.json()["groupsCreated"] == 1
        assert response.json()["membersCreated"] == 1

    def test_import_requires_admin(self, client, operator_headers):
        response = _upload(client, operator_headers)
        assert response.status_code == 403
