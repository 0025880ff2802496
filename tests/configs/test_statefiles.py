import json

import pytest

from certsub._cogs.configs.statefiles import ConfigurationError, ResourceRecord, State, \
                                             load_config, load_state, save_state


def test_config_loading(tmp_path):
    path = tmp_path / 'certsub.yaml'
    path.write_text("""
subscriptions:
  example:
    certificate_authority: lets-encrypt
    domains: [example.com, www.example.com]
    common_name: example.com
  other:
    certificate_authority: globalsign
    domains:
      - other.com
""")
    configs = load_config(str(path))
    assert configs == {
        'example': {
            'certificate_authority': 'lets-encrypt',
            'domains': ['example.com', 'www.example.com'],
            'common_name': 'example.com',
        },
        'other': {
            'certificate_authority': 'globalsign',
            'domains': ['other.com'],
        },
    }


@pytest.mark.parametrize('text', ['', 'subscriptions:', 'subscriptions: {}'])
def test_config_loading_of_nothing(tmp_path, text):
    path = tmp_path / 'certsub.yaml'
    path.write_text(text)
    assert load_config(str(path)) == {}


@pytest.mark.parametrize('text, match', [
    ('[a, b]', "must be a mapping"),
    ('services: {}', "Unexpected sections"),
    ('subscriptions: [a]', "must be a mapping"),
    ('subscriptions: {example: [a]}', "'example'"),
    ('subscriptions: {example: {a: b}', "Cannot parse"),
])
def test_config_loading_errors(tmp_path, text, match):
    path = tmp_path / 'certsub.yaml'
    path.write_text(text)
    with pytest.raises(ConfigurationError, match=match):
        load_config(str(path))


def test_state_loading_of_absent_file(tmp_path):
    state = load_state(str(tmp_path / 'certsub.state.json'))
    assert state == State()
    assert state.records == {}


def test_state_saving_and_loading(tmp_path):
    path = tmp_path / 'certsub.state.json'
    state = State(records={
        'b': ResourceRecord(id='id2', attributes={'domains': ['b.com']}),
        'a': ResourceRecord(id='id1'),
    })

    save_state(str(path), state)

    assert json.loads(path.read_text()) == {
        'version': 1,
        'subscriptions': {
            'a': {'id': 'id1', 'attributes': {}},
            'b': {'id': 'id2', 'attributes': {'domains': ['b.com']}},
        },
    }
    assert load_state(str(path)) == state
    assert [p.name for p in tmp_path.iterdir()] == ['certsub.state.json']  # no temporary files.


def test_state_saving_failure_keeps_the_old_file(tmp_path, mocker):
    path = tmp_path / 'certsub.state.json'
    path.write_text('{"version": 1, "subscriptions": {}}')
    mocker.patch('json.dump', side_effect=ValueError("boo"))

    with pytest.raises(ValueError):
        save_state(str(path), State(records={'a': ResourceRecord(id='id1')}))

    assert path.read_text() == '{"version": 1, "subscriptions": {}}'
    assert [p.name for p in tmp_path.iterdir()] == ['certsub.state.json']


@pytest.mark.parametrize('text', [
    'not a json',
    '[]',
    '{"version": 2, "subscriptions": {}}',
])
def test_state_loading_errors(tmp_path, text):
    path = tmp_path / 'certsub.state.json'
    path.write_text(text)
    with pytest.raises(ConfigurationError):
        load_state(str(path))
