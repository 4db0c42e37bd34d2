"""
IPv6 policy blocks.

Appended after the base block according to the menu choice. The 'skip'
policy has no block.
"""

from typing import Dict, List, Tuple

INTERFACES = ('all', 'default', 'lo')

BLOCKS: Dict[str, List[Tuple[str, List[Tuple[str, str]]]]] = {
    'disable': [
        ('Disable IPv6', [
            (f'net.ipv6.conf.{iface}.disable_ipv6', '1') for iface in INTERFACES
        ]),
    ],
    'enable': [
        ('Enable IPv6', [
            (f'net.ipv6.conf.{iface}.disable_ipv6', '0') for iface in INTERFACES
        ]),
        # accept_ra = 2 keeps router advertisements working with forwarding on
        ('IPv6 forwarding and router advertisements', [
            ('net.ipv6.conf.all.forwarding', '1'),
            ('net.ipv6.conf.default.forwarding', '1'),
            ('net.ipv6.conf.all.accept_ra', '2'),
            ('net.ipv6.conf.default.accept_ra', '2'),
        ]),
    ],
    'skip': [],
}


def sections(policy: str) -> List[Tuple[str, List[Tuple[str, str]]]]:
    """Return the block for an IPv6 policy name"""
    if policy not in BLOCKS:
        raise KeyError(f"Unknown IPv6 policy: {policy}")
    return [(title, list(entries)) for title, entries in BLOCKS[policy]]
