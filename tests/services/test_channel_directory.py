from services.channel_directory import ChannelDirectory


def test_link_is_bidirectional():
    directory = ChannelDirectory()
    directory.link(10, 100)

    assert directory.thread_for(10) == 100
    assert directory.channel_for(100) == 10
    assert 10 in directory
    assert len(directory) == 1


def test_unknown_ids_resolve_to_none():
    directory = ChannelDirectory()

    assert directory.thread_for(10) is None
    assert directory.channel_for(100) is None
    assert 10 not in directory


def test_relinking_channel_drops_old_thread():
    directory = ChannelDirectory()
    directory.link(10, 100)
    directory.link(10, 101)

    assert directory.thread_for(10) == 101
    assert directory.channel_for(100) is None
    assert directory.channel_for(101) == 10


def test_relinking_thread_drops_old_channel():
    directory = ChannelDirectory()
    directory.link(10, 100)
    directory.link(11, 100)

    assert directory.thread_for(10) is None
    assert directory.thread_for(11) == 100
    assert len(directory) == 1
