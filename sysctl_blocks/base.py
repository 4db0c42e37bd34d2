"""
Base TCP tuning block.

BBR congestion control with the fq queue discipline, ECN and the socket
buffer, backlog and timeout settings written on every run.
"""

from typing import List, Tuple

# Keys read back after the reload to confirm the block took effect
VERIFY_KEYS = [
    'net.core.default_qdisc',
    'net.ipv4.tcp_congestion_control',
    'net.ipv4.tcp_ecn',
]

SECTIONS: List[Tuple[str, List[Tuple[str, str]]]] = [
    ('Queue discipline and congestion control', [
        ('net.core.default_qdisc', 'fq'),
        ('net.ipv4.tcp_congestion_control', 'bbr'),
    ]),
    ('Explicit Congestion Notification', [
        ('net.ipv4.tcp_ecn', '1'),
    ]),
    ('Socket buffer sizing', [
        ('net.core.rmem_max', '67108864'),
        ('net.core.wmem_max', '67108864'),
        ('net.core.rmem_default', '262144'),
        ('net.core.wmem_default', '262144'),
        ('net.ipv4.tcp_rmem', '4096 87380 67108864'),
        ('net.ipv4.tcp_wmem', '4096 65536 67108864'),
        ('net.ipv4.tcp_notsent_lowat', '16384'),
    ]),
    ('Backlog and queue lengths', [
        ('net.core.netdev_max_backlog', '16384'),
        ('net.core.somaxconn', '8192'),
        ('net.ipv4.tcp_max_syn_backlog', '8192'),
    ]),
    ('Timeouts and keepalive', [
        ('net.ipv4.tcp_fin_timeout', '15'),
        ('net.ipv4.tcp_keepalive_time', '600'),
        ('net.ipv4.tcp_keepalive_intvl', '30'),
        ('net.ipv4.tcp_keepalive_probes', '5'),
    ]),
    ('TCP behaviour', [
        ('net.ipv4.tcp_fastopen', '3'),
        ('net.ipv4.tcp_mtu_probing', '1'),
        ('net.ipv4.tcp_slow_start_after_idle', '0'),
        ('net.ipv4.tcp_window_scaling', '1'),
        ('net.ipv4.tcp_sack', '1'),
        ('net.ipv4.tcp_timestamps', '1'),
    ]),
]


def sections() -> List[Tuple[str, List[Tuple[str, str]]]]:
    """Return the base block"""
    return [(title, list(entries)) for title, entries in SECTIONS]
