import pytest

from bbr_tune import InvalidMenuChoice, Ipv6Policy, confirm, parse_ipv6_choice, prompt_ipv6_policy


def replies(*answers):
    it = iter(answers)
    return lambda prompt='': next(it)


@pytest.mark.parametrize('answer, policy', [
    ('1', Ipv6Policy.DISABLE),
    ('2', Ipv6Policy.ENABLE),
    (' 3\n', Ipv6Policy.SKIP),
])
def test_parse_ipv6_choice(answer, policy):
    assert parse_ipv6_choice(answer) is policy


@pytest.mark.parametrize('answer', ['', '0', '4', 'disable', '1 2'])
def test_parse_ipv6_choice_invalid(answer):
    with pytest.raises(InvalidMenuChoice) as excinfo:
        parse_ipv6_choice(answer)
    assert excinfo.value.choice == answer


def test_prompt_reprompts_until_valid(capsys):
    policy = prompt_ipv6_policy(replies('x', '', '9', '2'))
    assert policy is Ipv6Policy.ENABLE
    assert capsys.readouterr().out.count('please enter 1-3') == 3


def test_prompt_with_bound_gives_up():
    with pytest.raises(InvalidMenuChoice):
        prompt_ipv6_policy(replies('a', 'b', '1'), max_attempts=2)


def test_prompt_with_bound_accepts_last_attempt():
    assert prompt_ipv6_policy(replies('a', '3'), max_attempts=2) is Ipv6Policy.SKIP


@pytest.mark.parametrize('answer, expected', [
    ('y', True), ('Y', True), ('yes', True), ('', False), ('n', False), ('yep', False),
])
def test_confirm(answer, expected):
    assert confirm('Continue? [y/N]: ', replies(answer)) is expected
