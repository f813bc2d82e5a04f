import pytest

from azkarp.loadbalancers import (
    LoadBalancer,
    LoadBalancerNotFoundError,
    LoadBalancersAPI,
    make_backend_address_pool_id,
    make_load_balancer_id,
)


@pytest.fixture
def api():
    return LoadBalancersAPI()


def test_make_load_balancer_id_format():
    assert (
        make_load_balancer_id("rg", "kubernetes")
        == "/subscriptions/subscriptionID/resourceGroups/rg/providers/Microsoft.Network/loadBalancers/kubernetes"
    )


def test_backend_pool_id_extends_lb_id():
    pool_id = make_backend_address_pool_id("rg", "kubernetes", "pool")
    assert pool_id == make_load_balancer_id("rg", "kubernetes") + "/backendAddressPools/pool"


def test_store_and_get(api):
    lb = LoadBalancer(id=make_load_balancer_id("rg", "lb"), name="lb")
    api.store(lb)
    fetched = api.get("rg", "lb")
    assert fetched == lb
    assert fetched is not lb


def test_get_missing_raises(api):
    with pytest.raises(LoadBalancerNotFoundError):
        api.get("rg", "nope")


def test_store_requires_id(api):
    with pytest.raises(ValueError):
        api.store(LoadBalancer(name="lb"))


def test_list_pages_sorted_single_page(api):
    names = ["b", "c", "a"]
    for name in names:
        api.store(LoadBalancer(id=make_load_balancer_id("rg", name), name=name))
    pages = list(api.list_pages("rg"))
    assert len(pages) == 1
    ids = [lb.id for lb in pages[0]]
    assert ids == sorted(make_load_balancer_id("rg", n) for n in names)


def test_reset_empties(api):
    api.store(LoadBalancer(id=make_load_balancer_id("rg", "lb")))
    api.reset()
    assert list(api.list_pages("rg")) == [[]]