import json
import logging

import pytest

from certsub._cogs.configs.statefiles import ResourceRecord, State, load_state, save_state
from certsub._cogs.structs import diffs
from certsub._core.actions.planning import Action, Plan
from certsub._core.resources.diagnostics import Diagnostics, error, warning
from certsub.cli import main

CREATE_PLAN = Plan(
    name='example',
    action=Action.CREATE,
    config={'certificate_authority': 'lets-encrypt', 'domains': ['example.com']},
    changes=diffs.diff(None, {'certificate_authority': 'lets-encrypt', 'domains': ['example.com']}),
    unknown=frozenset({'state'}),
)

REPLACE_PLAN = Plan(
    name='example',
    action=Action.REPLACE,
    id='sub1',
    changes=diffs.diff({'domains': ['example.com']}, {'domains': ['www.example.com']}),
    requires_replace=frozenset({'domains'}),
)


@pytest.fixture()
def plan_fn(mocker):
    return mocker.patch('certsub._core.actions.planning.plan',
                        return_value=({'example': CREATE_PLAN}, Diagnostics()))


@pytest.fixture()
def apply_fn(mocker):
    return mocker.patch('certsub._core.actions.application.apply', return_value=Diagnostics())


def test_schema(invoke):
    result = invoke(['schema'])
    assert result.exit_code == 0
    described = json.loads(result.output)
    assert described['type'] == 'fastly_tls_subscription'
    assert described['attributes']['domains'] == {
        'type': 'set',
        'description': 'List of domains on which to enable TLS.',
        'required': True,
        'min_items': 1,
        'elem': {'type': 'string'},
    }
    assert described['attributes']['managed_dns_challenges']['elem']['record_value']['computed']
    assert 'deprecated' in described['attributes']['managed_dns_challenge']


def test_missing_api_key(runner, plan_fn):
    result = runner.invoke(main, ['plan'], env={'FASTLY_API_KEY': ''})
    assert result.exit_code == 1
    assert 'No API key is provided' in result.output
    assert not plan_fn.called


def test_missing_config(invoke, srcdir, plan_fn):
    srcdir.joinpath('certsub.yaml').unlink()
    result = invoke(['plan'])
    assert result.exit_code == 2
    assert not plan_fn.called


def test_invalid_config(invoke, srcdir, plan_fn):
    srcdir.joinpath('certsub.yaml').write_text('services: {}')
    result = invoke(['plan'])
    assert result.exit_code == 1
    assert 'Unexpected sections' in result.output
    assert not plan_fn.called


def test_plan_of_creation(invoke, plan_fn):
    result = invoke(['plan'])
    assert result.exit_code == 0
    assert '  + example: create' in result.output
    assert '      certificate_authority: "lets-encrypt"' in result.output
    assert '      domains: ["example.com"]' in result.output
    assert '      state: (known after apply)' in result.output

    assert plan_fn.call_count == 1
    resource, state, configs = plan_fn.call_args.args
    assert resource.type_name == 'fastly_tls_subscription'
    assert state == State()
    assert configs == {'example': {'certificate_authority': 'lets-encrypt',
                                   'domains': ['example.com', 'www.example.com']}}
    assert plan_fn.call_args.kwargs['refresh'] is True


def test_plan_of_replacement(invoke, plan_fn):
    plan_fn.return_value = ({'example': REPLACE_PLAN}, Diagnostics())
    result = invoke(['plan', '--no-refresh'])
    assert result.exit_code == 0
    assert '-/+ example: replace (forced by: domains)' in result.output
    assert '      domains: ["example.com"] -> ["www.example.com"]' in result.output
    assert plan_fn.call_args.kwargs['refresh'] is False


def test_plan_without_changes(invoke, plan_fn):
    plan_fn.return_value = ({'example': Plan(name='example', action=Action.NOOP)}, Diagnostics())
    result = invoke(['plan'])
    assert result.exit_code == 0
    assert 'No changes.' in result.output


def test_plan_with_errors(invoke, plan_fn):
    plan_fn.return_value = ({}, Diagnostics([error("boo", attribute_path=['domains']),
                                             warning("just a warning")]))
    result = invoke(['plan'])
    assert result.exit_code == 1
    assert 'Error: boo (at domains)' in result.output
    assert 'just a warning' not in result.output


def test_plan_uses_the_state_file(invoke, srcdir, plan_fn):
    save_state(str(srcdir / 'other.json'), State(records={'example': ResourceRecord(id='sub1')}))
    result = invoke(['plan', '-s', 'other.json'])
    assert result.exit_code == 0
    state = plan_fn.call_args.args[1]
    assert state.records['example'].id == 'sub1'


def test_apply_with_auto_approval(invoke, srcdir, plan_fn, apply_fn):
    result = invoke(['apply', '--yes'])
    assert result.exit_code == 0
    assert apply_fn.call_count == 1
    assert apply_fn.call_args.args[2] == {'example': CREATE_PLAN}
    assert srcdir.joinpath('certsub.state.json').exists()


def test_apply_with_confirmation(invoke, plan_fn, apply_fn):
    result = invoke(['apply'], input='y\n')
    assert result.exit_code == 0
    assert 'Apply these changes?' in result.output
    assert apply_fn.call_count == 1


def test_apply_with_rejection(invoke, plan_fn, apply_fn):
    result = invoke(['apply'], input='n\n')
    assert result.exit_code == 1
    assert 'Aborted' in result.output
    assert not apply_fn.called


def test_apply_without_changes(invoke, plan_fn, apply_fn):
    plan_fn.return_value = ({'example': Plan(name='example', action=Action.NOOP)}, Diagnostics())
    result = invoke(['apply'])
    assert result.exit_code == 0
    assert 'No changes.' in result.output
    assert not apply_fn.called


def test_apply_with_errors(invoke, plan_fn, apply_fn):
    apply_fn.return_value = Diagnostics([error("API error (HTTP 409): Conflict")])
    result = invoke(['apply', '-y'])
    assert result.exit_code == 1
    assert 'Error: API error (HTTP 409): Conflict' in result.output


def test_refresh(invoke, srcdir, mocker):
    refresh_fn = mocker.patch('certsub._core.actions.planning.refresh_all', return_value=Diagnostics())
    result = invoke(['refresh'])
    assert result.exit_code == 0
    assert refresh_fn.call_count == 1
    assert load_state(str(srcdir / 'certsub.state.json')) == State()


def test_import(invoke, srcdir, mocker):
    async def import_fn(resource, state, name, id, **_):
        state.records[name] = ResourceRecord(id=id, attributes={'state': 'issued'})
        return Diagnostics()
    mocker.patch('certsub._core.actions.application.import_resource', side_effect=import_fn)

    result = invoke(['import', 'example', 'sub1'])

    assert result.exit_code == 0
    assert "Imported 'example' (sub1)." in result.output
    state = load_state(str(srcdir / 'certsub.state.json'))
    assert state.records == {'example': ResourceRecord(id='sub1', attributes={'state': 'issued'})}


def test_import_failure(invoke, srcdir, mocker):
    mocker.patch('certsub._core.actions.application.import_resource',
                 return_value=Diagnostics([error("Cannot import non-existent remote object (sub1).")]))

    result = invoke(['import', 'example', 'sub1'])

    assert result.exit_code == 1
    assert 'Cannot import non-existent remote object (sub1).' in result.output
    assert not srcdir.joinpath('certsub.state.json').exists()


def test_destroy_of_nothing(invoke, mocker):
    destroy_fn = mocker.patch('certsub._core.actions.application.destroy')
    result = invoke(['destroy'])
    assert result.exit_code == 0
    assert 'Nothing to destroy.' in result.output
    assert not destroy_fn.called


def test_destroy(invoke, srcdir, mocker):
    save_state(str(srcdir / 'certsub.state.json'), State(records={'example': ResourceRecord(id='sub1')}))
    destroy_fn = mocker.patch('certsub._core.actions.application.destroy', return_value=Diagnostics())

    result = invoke(['destroy', '-y'])

    assert result.exit_code == 0
    assert destroy_fn.call_count == 1
    assert destroy_fn.call_args.args[1].records['example'].id == 'sub1'


def test_destroy_with_rejection(invoke, srcdir, mocker):
    save_state(str(srcdir / 'certsub.state.json'), State(records={'example': ResourceRecord(id='sub1')}))
    destroy_fn = mocker.patch('certsub._core.actions.application.destroy', return_value=Diagnostics())

    result = invoke(['destroy'], input='n\n')

    assert result.exit_code == 1
    assert 'Delete 1 subscription(s)?' in result.output
    assert not destroy_fn.called


@pytest.mark.parametrize('options, level', [
    ([], logging.INFO),
    (['-q'], logging.WARNING),
    (['-v'], logging.DEBUG),
    (['--debug'], logging.DEBUG),
])
def test_verbosity(invoke, mocker, options, level):
    mocker.patch('certsub._core.actions.planning.refresh_all', return_value=Diagnostics())
    result = invoke(['refresh'] + options)
    assert result.exit_code == 0
    assert logging.getLogger().level == level


def test_verbosity_via_envvars(runner, mocker):
    mocker.patch('certsub._core.actions.planning.refresh_all', return_value=Diagnostics())
    result = runner.invoke(main, ['refresh'], env={'FASTLY_API_KEY': 'fake-key', 'CERTSUB_REFRESH_VERBOSE': 'true'})
    assert result.exit_code == 0
    assert logging.getLogger().level == logging.DEBUG
