import pytest

from core.ip_utils import IPUtils


@pytest.fixture
def ip_utils():
    return IPUtils()


@pytest.mark.parametrize('ip, provider', [
    ('151.101.2.3', 'Fastly'),
    ('199.232.10.1', 'Fastly'),
    ('157.185.0.9', 'Fastly'),
    ('104.18.9.9', 'Cloudflare'),
    ('172.64.1.1', 'Cloudflare'),
    ('8.8.8.8', 'Cloudflare'),
])
def test_provider_for_uses_prefix(ip_utils, ip, provider):
    assert ip_utils.provider_for(ip) == provider


def test_provider_for_custom_prefixes():
    utils = IPUtils(provider_prefixes={'GCore': ['92.223.']})
    assert utils.provider_for('92.223.1.1') == 'GCore'
    assert utils.provider_for('151.101.2.3') == 'Cloudflare'


def test_normalize_trims_whitespace(ip_utils):
    assert ip_utils.normalize(' 104.16.1.1\n') == '104.16.1.1'


@pytest.mark.parametrize('candidate', ['bad', '', '1.2.3', '256.1.1.1', '1.2.3.4.5', None, 5, ['1.2.3.4'], {'ip': '1.1.1.1'}])
def test_normalize_rejects_malformed(ip_utils, candidate):
    assert ip_utils.normalize(candidate) is None
    assert not ip_utils.is_well_formed(candidate)


def test_cdn_for(ip_utils):
    assert ip_utils.cdn_for('104.16.0.1') == 'Cloudflare'
    assert ip_utils.cdn_for('151.101.1.1') == 'Fastly'
    assert ip_utils.cdn_for('8.8.8.8') is None
    assert ip_utils.cdn_for('garbage') is None
    assert ip_utils.is_cdn_ip('188.114.97.3')
    assert not ip_utils.is_cdn_ip('10.0.0.1')
