import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def make_store(tmp_path: Path, name: str = "store.db", **settings):
    from venstore.application.container import build_container
    from venstore.config import StoreSettings

    return build_container(tmp_path / name, StoreSettings(**settings))


def add_product(store, name: str = "Harina PAN", price: float = 2.0, stock: float = 10, **kw):
    return store.inventory.create_product(name=name, price=price, stock=stock, **kw)
