from utils.config import config, build_database_url, _as_flag, _as_int


def test_database_url_prefers_explicit_url():
    assert build_database_url({'url': 'sqlite:///x.db', 'host': 'db'}) == 'sqlite:///x.db'


def test_database_url_from_parts():
    url = build_database_url({
        'url': None, 'host': 'db.local', 'port': 3307,
        'user': 'app', 'password': 'pw', 'database': 'travel_contracts',
    })
    assert url == 'mysql+pymysql://app:pw@db.local:3307/travel_contracts'


def test_int_settings_fall_back_on_bad_values():
    assert _as_int('PAGE_SIZE', '40', 25) == 40
    assert _as_int('PAGE_SIZE', '', 25) == 25
    assert _as_int('PAGE_SIZE', 'forty', 25) == 25


def test_flags():
    assert _as_flag('true')
    assert _as_flag('Yes')
    assert not _as_flag('false')
    assert not _as_flag('0')
    assert _as_flag(None)
    assert not _as_flag(None, default=False)


def test_test_environment_settings():
    assert config.get_database_url().startswith('sqlite:///')
    assert not config.is_feature_enabled('EMAIL_NOTIFICATIONS')
    assert config.get_app_setting('RELEASE_WARNING_DAYS') == 30
    assert {'host', 'port', 'sender', 'password'} <= set(config.get_email_config())
