import asyncio

from atelier.main import main
from atelier.persistence import DocumentStore
from atelier.realtime import PRODUCTS, SETTINGS, SETTINGS_DOC_ID, SUPPLIERS


def read(db, collection, doc_id=None):
    store = DocumentStore(db)
    try:
        if doc_id is not None:
            return asyncio.run(store.get(collection, doc_id))
        return store._load_collection(collection)
    finally:
        store.close()


def test_add_then_edit_product(tmp_path, capsys):
    db = str(tmp_path / "atelier.db")
    assert main(["--db", db, "add-product", "--name", "Penne", "--price", "4000", "--category", "Pâtes"]) == 0
    product_id = capsys.readouterr().out.split()[-1]

    assert main(["--db", db, "edit-product", product_id, "--price", "4200", "--promoted"]) == 0

    doc = read(db, PRODUCTS, product_id)
    assert doc["price"] == 4200
    assert doc["isPromoted"] is True
    assert doc["name"] == "Penne"


def test_edit_of_missing_product_fails(tmp_path, capsys):
    db = str(tmp_path / "atelier.db")

    assert main(["--db", db, "edit-product", "ghost", "--price", "10"]) == 1
    assert "ghost" in capsys.readouterr().err


def test_maintenance_switch_keeps_other_settings(tmp_path):
    db = str(tmp_path / "atelier.db")
    assert main(["--db", db, "settings", "--app-name", "Chez Awa"]) == 0

    assert main(["--db", db, "settings", "--maintenance", "on"]) == 0

    doc = read(db, SETTINGS, SETTINGS_DOC_ID)
    assert doc["isMaintenanceMode"] is True
    assert doc["appName"] == "Chez Awa"


def test_staff_and_supplier_accounts(tmp_path):
    db = str(tmp_path / "atelier.db")
    assert main(["--db", db, "add-staff", "--name", "Moussa", "--email", "m@example.com",
                 "--password", "pw", "--role", "Caissier"]) == 0
    assert main(["--db", db, "register-supplier", "--name", "Chez Awa", "--password", "secret"]) == 0

    accounts = {doc["name"]: doc for doc in read(db, SUPPLIERS)}
    assert accounts["Moussa"]["verified"] is True
    assert accounts["Moussa"]["role"] == "Caissier"
    assert accounts["Chez Awa"]["verified"] is False


def test_add_stock(tmp_path):
    db = str(tmp_path / "atelier.db")

    assert main(["--db", db, "add-stock", "--name", "Oeufs", "--quantity", "2", "--unit", "plateaux",
                 "--threshold", "4"]) == 0

    [doc] = read(db, "Inventory")
    assert doc["quantity"] == 2
    assert doc["threshold"] == 4
