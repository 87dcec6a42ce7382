"""
Tests for group setup and configuration errors.
"""

import pytest
from charm.toolbox.pairinggroup import G1, ZR, pair

from dual_apsi import Config, ConfigurationError, setup
from dual_apsi.groups import SYMMETRIC_CURVES, load_group, read_param_file


@pytest.fixture(scope="module")
def params():
    return load_group(160, 512)


def test_ss512_is_symmetric_and_bilinear(params):
    group = params['group']
    assert params['group_name'] == SYMMETRIC_CURVES[(160, 512)]
    assert int(group.order()).bit_length() == 160

    P = group.random(G1)
    a, b = group.random(ZR), group.random(ZR)
    assert pair(P ** a, P ** b) == pair(P, P) ** (a * b)


@pytest.mark.parametrize("r_bits,q_bits", [(80, 512), (160, 1024), (256, 3072)])
def test_unsupported_sizes_rejected(r_bits, q_bits):
    with pytest.raises(ConfigurationError):
        load_group(r_bits, q_bits)


def test_asymmetric_curve_rejected():
    with pytest.raises(ConfigurationError, match="asymmetric"):
        load_group(160, 512, curve='MNT224')


def test_curve_order_must_match_r_bits():
    with pytest.raises(ConfigurationError):
        load_group(161, 512, curve='SS512')


def test_read_param_file(tmp_path):
    path = tmp_path / "a.param"
    path.write_text("# comment\ntype a\nq 8780710799663312522437781984754049815806883199414208211028653399266475630880222957078625179422662221423155858769582317459277713367317481324925129998224791\nr 730750818665451621361119245571504901405976559617\nexp2 159\n")
    params = read_param_file(str(path))
    assert params['type'] == 'a'
    assert int(params['r']).bit_length() == 160
    assert int(params['q']).bit_length() == 512
    assert params['exp2'] == '159'


def test_param_file_wrong_type(tmp_path):
    path = tmp_path / "d.param"
    path.write_text("type d\nq 7\nr 5\n")
    with pytest.raises(ConfigurationError, match="type a"):
        load_group(160, 512, param_file=str(path))


def test_param_file_wrong_size(tmp_path):
    path = tmp_path / "small.param"
    path.write_text("type a\nq 1000003\nr 1009\n")
    with pytest.raises(ConfigurationError):
        load_group(160, 512, param_file=str(path))


def test_param_file_missing(tmp_path):
    with pytest.raises(ConfigurationError):
        load_group(160, 512, param_file=str(tmp_path / "nope.param"))


class TestConfig:

    def test_defaults(self):
        config = Config()
        assert config.r_bits == 160
        assert config.q_bits == 512
        assert config.element_width == 4
        assert config.num_workers >= 1
        assert config.validate() is config

    @pytest.mark.parametrize("field,value", [
        ('element_width', 0), ('num_workers', -1), ('r_bits', 'x'), ('q_bits', None), ('num_workers', True),
    ])
    def test_invalid_values(self, field, value):
        config = Config()
        setattr(config, field, value)
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_r_bits_below_q_bits(self):
        with pytest.raises(ConfigurationError):
            Config(r_bits=512, q_bits=160).validate()

    def test_setup_does_not_mutate_config(self):
        config = Config(element_width=2)
        scheme = setup(160, 512, config=config)
        assert scheme.config is not config
        assert scheme.config.element_width == 2

    def test_setup_surfaces_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            setup(100, 512)


def test_explicit_curve_must_match_field_size():
    with pytest.raises(ConfigurationError):
        load_group(160, 1024, curve='SS512')


def test_explicit_curve_of_unknown_size_rejected():
    with pytest.raises(ConfigurationError, match="param_file"):
        load_group(160, 512, curve='SS1024')


def test_explicit_known_curve_accepted():
    assert load_group(160, 512, curve='SS512')['group_name'] == 'SS512'
