from runcatcher.main import parse_args


def test_serve_arguments():
    args = parse_args(['serve', '--port', '8080', '--captures-dir', '/tmp/captures'])

    assert args.command == 'serve'
    assert args.port == 8080
    assert args.captures_dir == '/tmp/captures'


def test_watch_arguments():
    args = parse_args([
        '--debug', 'watch', '--threshold', '150', '--cooldown', '3',
        '--model', 'a.pt', '--model', 'b.pt', '--display',
    ])

    assert args.debug
    assert args.command == 'watch'
    assert args.threshold == 150.0
    assert args.cooldown == 3.0
    assert args.model == ['a.pt', 'b.pt']
    assert args.display


def test_debug_after_command():
    assert parse_args(['serve', '--debug']).debug
    assert parse_args(['watch', '--debug', '--display']).debug


def test_debug_defaults_off():
    assert not parse_args(['serve']).debug
