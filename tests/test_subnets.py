import pytest

from wg_registry.errors import InvalidRecord
from wg_registry.subnets import merge, network_prefix, parse_subnets, split_tokens


def test_merge_dedups_and_sorts():
    assert merge(",", "", "10.0.0.0/24,10.0.0.0/24", "10.0.1.0/24") == "10.0.0.0/24,10.0.1.0/24"


def test_merge_excludes():
    assert merge(",", "10.0.1.0/24", "10.0.0.0/24,10.0.1.0/24") == "10.0.0.0/24"


def test_merge_order_does_not_depend_on_input_order():
    a = merge(",", "", "192.168.1.0/24", "10.0.0.0/8,172.16.0.0/12")
    b = merge(",", "", "172.16.0.0/12,10.0.0.0/8", "192.168.1.0/24")
    assert a == b == "10.0.0.0/8,172.16.0.0/12,192.168.1.0/24"


def test_merge_is_idempotent():
    once = merge(",", "10.0.2.0/24", "10.0.3.0/24,10.0.2.0/24", "10.0.1.0/24,10.0.3.0/24")
    assert merge(",", "10.0.2.0/24", once) == once


@pytest.mark.parametrize("inputs", [(), ("",), ("  ",), (",,", " , ")])
def test_merge_empty_inputs(inputs):
    assert merge(",", "", *inputs) == ""


def test_merge_everything_excluded_is_empty_string():
    assert merge(",", "10.0.0.0/24,10.0.1.0/24", "10.0.1.0/24", "10.0.0.0/24") == ""


def test_exclude_list_is_split_and_stripped():
    assert merge(",", " 10.0.0.0/24 ,, 10.0.0.0/24", "10.0.0.0/24, 10.0.1.0/24") == "10.0.1.0/24"


def test_other_separator():
    assert merge(" ", "b", "c a", "b a") == "a c"


def test_split_tokens_strips():
    assert split_tokens(",", " a , b,,a ") == {"a", "b"}


def test_parse_subnets():
    assert parse_subnets("192.168.1.0/24, 10.1.0.0/16,192.168.1.0/24") == ("10.1.0.0/16", "192.168.1.0/24")
    assert parse_subnets(["10.2.0.0/16", "10.1.0.0/16,10.3.0.0/16"]) == (
        "10.1.0.0/16",
        "10.2.0.0/16",
        "10.3.0.0/16",
    )
    assert parse_subnets(None) == ()
    assert parse_subnets("") == ()


def test_parse_subnets_rejects_garbage():
    with pytest.raises(InvalidRecord):
        parse_subnets("10.0.0.0/24,not-a-net")


def test_network_prefix():
    assert network_prefix("10.8.0.0/24") == 24
    assert network_prefix("10.8.0.1/16") == 16
