"""Client records and the sender snapshots transactions copy from them."""
import pytest

from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.client import Client
from cargo.schemas.client import ClientCreate, ClientUpdate
from cargo.services.client import ClientService, search_clients

from .conftest import make_form, make_receiver, make_sender, transaction_payload


@pytest.fixture
def clients(db) -> ClientService:
    return ClientService(db)


def client_form(**overrides) -> ClientCreate:
    data = {"name": "PT Sinar Jaya", "phone": "0812000111", "address": "Jl. Rajawali 5", "city": "Surabaya"}
    data.update(overrides)
    return ClientCreate(**data)


class TestSearchClients:
    def test_matches_name_phone_city_address(self) -> None:
        rows = [
            Client(name="PT Sinar Jaya", phone="0812", city="Surabaya", address="Jl. Rajawali"),
            Client(name="CV Maju", phone="0813", city="Makassar", address="Jl. Veteran"),
        ]
        assert [c.name for c in search_clients(rows, "sinar")] == ["PT Sinar Jaya"]
        assert [c.name for c in search_clients(rows, "0813")] == ["CV Maju"]
        assert [c.name for c in search_clients(rows, "MAKASSAR")] == ["CV Maju"]
        assert [c.name for c in search_clients(rows, "rajawali")] == ["PT Sinar Jaya"]

    def test_blank_term_returns_everything(self) -> None:
        rows = [Client(name="A"), Client(name="B")]
        assert search_clients(rows, "  ") == rows


class TestClientService:
    @pytest.mark.asyncio
    async def test_create_and_get(self, clients) -> None:
        created = await clients.create_client(client_form(), user_id="u-1")
        fetched = await clients.get_client(created.id)
        assert fetched.name == "PT Sinar Jaya"
        assert fetched.user_id == "u-1"
        assert fetched.notes == ""

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, clients) -> None:
        with pytest.raises(ValidationFailure) as exc:
            await clients.create_client(client_form(name="  "))
        assert exc.value.field == "name"

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, clients) -> None:
        for name in ("toko Baru", "CV Maju", "PT Sinar Jaya"):
            await clients.create_client(client_form(name=name))
        assert [c.name for c in await clients.list_clients()] == ["CV Maju", "PT Sinar Jaya", "toko Baru"]

    @pytest.mark.asyncio
    async def test_sparse_update(self, clients) -> None:
        created = await clients.create_client(client_form())
        updated = await clients.update_client(created.id, ClientUpdate(phone="0899"))
        assert updated.phone == "0899"
        assert updated.city == "Surabaya"

    @pytest.mark.asyncio
    async def test_delete(self, clients) -> None:
        created = await clients.create_client(client_form())
        await clients.delete_client(created.id)
        with pytest.raises(RecordNotFoundError):
            await clients.get_client(created.id)


class TestSenderFromClient:
    @pytest.mark.asyncio
    async def test_transaction_copies_client_details(self, clients, transactions) -> None:
        client = await clients.create_client(client_form())
        sender = await transactions.resolve_sender(None, client.id)
        transaction = await transactions.create_transaction(make_form(), sender, make_receiver())

        assert transaction.sender_id == client.id
        assert transaction.sender_name == "PT Sinar Jaya"
        assert transaction.sender_city == "Surabaya"
        assert transaction.sender_address == "Jl. Rajawali 5"

    @pytest.mark.asyncio
    async def test_client_edits_do_not_rewrite_history(self, clients, transactions) -> None:
        client = await clients.create_client(client_form())
        sender = await transactions.resolve_sender(None, client.id)
        transaction = await transactions.create_transaction(make_form(), sender, make_receiver())

        await clients.update_client(client.id, ClientUpdate(name="PT Sinar Jaya Abadi", city="Gresik"))

        stored = await transactions.get_transaction(transaction.id)
        assert stored.sender_name == "PT Sinar Jaya"
        assert stored.sender_city == "Surabaya"

    @pytest.mark.asyncio
    async def test_explicit_snapshot_wins(self, clients, transactions) -> None:
        client = await clients.create_client(client_form())
        explicit = make_sender(id=client.id, name="Walk-in name")
        assert await transactions.resolve_sender(explicit, client.id) is explicit

    @pytest.mark.asyncio
    async def test_unknown_client(self, transactions) -> None:
        with pytest.raises(ValidationFailure) as exc:
            await transactions.resolve_sender(None, "missing")
        assert exc.value.field == "sender_id"

    @pytest.mark.asyncio
    async def test_no_sender_at_all(self, transactions) -> None:
        sender = await transactions.resolve_sender(None, None)
        with pytest.raises(ValidationFailure) as exc:
            await transactions.create_transaction(make_form(), sender, make_receiver())
        assert exc.value.field == "sender"


class TestClientsApi:
    @pytest.mark.asyncio
    async def test_crud_and_search(self, client) -> None:
        response = await client.post("/api/clients", json={"name": "CV Maju", "city": "Makassar"})
        assert response.status_code == 201
        client_id = response.json()["id"]

        await client.post("/api/clients", json={"name": "PT Sinar Jaya", "city": "Surabaya"})
        found = (await client.get("/api/clients", params={"q": "makassar"})).json()
        assert [c["name"] for c in found] == ["CV Maju"]

        response = await client.patch(f"/api/clients/{client_id}", json={"phone": "0813"})
        assert response.json()["phone"] == "0813"

        assert (await client.delete(f"/api/clients/{client_id}")).status_code == 204
        assert (await client.get(f"/api/clients/{client_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_blank_name_is_422(self, client) -> None:
        response = await client.post("/api/clients", json={"name": " "})
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "name"

    @pytest.mark.asyncio
    async def test_transaction_by_sender_id(self, client) -> None:
        client_id = (await client.post("/api/clients", json={"name": "CV Maju", "city": "Makassar"})).json()["id"]
        payload = transaction_payload(sender_id=client_id)
        payload.pop("sender")

        response = await client.post("/api/transactions", json=payload)

        assert response.status_code == 201
        assert response.json()["sender_id"] == client_id
        assert response.json()["sender_city"] == "Makassar"

    @pytest.mark.asyncio
    async def test_transaction_with_unknown_sender_id(self, client) -> None:
        payload = transaction_payload(sender_id="missing")
        payload.pop("sender")
        response = await client.post("/api/transactions", json=payload)
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "sender_id"
