import pytest

from certsub._cogs.structs.diffs import DiffOperation, diff


def test_new_resource_is_added_as_a_whole():
    planned = {'domains': ['example.com'], 'common_name': 'example.com'}
    d = diff(None, planned)
    assert d == (('add', (), None, planned),)


def test_nones_for_both():
    d = diff(None, None)
    assert d == ()


def test_same_attributes():
    d = diff({'domains': ['a.com'], 'force_update': False}, {'domains': ['a.com'], 'force_update': False})
    assert d == ()


@pytest.mark.parametrize('old, new', [
    (['example.com'], ['example.com', 'www.example.com']),
    (['example.com', 'www.example.com'], ['example.com']),
])
def test_sets_are_compared_as_a_whole(old, new):
    d = diff({'domains': old}, {'domains': new})
    assert d == (('change', ('domains',), old, new),)


def test_attributes_added_and_changed_in_field_order():
    old = {'domains': ['a.com'], 'common_name': 'a.com'}
    new = {'domains': ['a.com'], 'common_name': 'b.com', 'force_update': True}
    d = diff(old, new)
    assert d == (
        ('change', ('common_name',), 'a.com', 'b.com'),
        ('add', ('force_update',), None, True),
    )


def test_attributes_set_to_none_are_removed():
    d = diff({'configuration_id': 'cfg1'}, {'configuration_id': None})
    assert d == (('remove', ('configuration_id',), 'cfg1', None),)


def test_computed_attributes_of_the_prior_state_are_ignored():
    old = {'domains': ['a.com'], 'state': 'issued', 'certificate_id': 'cert1'}
    new = {'domains': ['b.com']}
    d = diff(old, new)
    assert d == (('change', ('domains',), ['a.com'], ['b.com']),)


def test_nested_attributes_are_recursed_into():
    d = diff({'challenge': {'record_type': 'CNAME', 'record_name': 'a'}},
             {'challenge': {'record_type': 'CNAME', 'record_name': 'b'}})
    assert d == (('change', ('challenge', 'record_name'), 'a', 'b'),)


def test_items_are_accessible_by_attributes():
    d = diff({'common_name': 'a.com'}, {'common_name': 'b.com'})
    assert d[0].operation is DiffOperation.CHANGE
    assert d[0].field == ('common_name',)
    assert d[0].old == 'a.com'
    assert d[0].new == 'b.com'
    assert str(d[0].operation) == 'change'
