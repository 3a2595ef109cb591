from echobreaker.core.overlay import dominant_stance, overlay_stances

from conftest import dist, make_video


def progressive_heavy_feed():
    videos = [make_video(f"p{i}", dist(progressive=0.9, non_political=0.1)) for i in range(4)]
    videos.append(make_video("c0", dist(conservative=0.8, centrist=0.2)))
    videos.append(make_video("m0", dist(centrist=0.7, non_political=0.3)))
    videos.append(make_video("n0", dist(non_political=1.0)))
    return videos


def test_dominant_stance_requires_strict_majority():
    assert dominant_stance(progressive_heavy_feed()) == "progressive"

    split = [make_video(f"p{i}", dist(progressive=1.0)) for i in range(3)]
    split += [make_video(f"c{i}", dist(conservative=1.0)) for i in range(3)]
    assert dominant_stance(split) is None


def test_dominant_stance_needs_enough_political_videos():
    videos = [make_video(f"p{i}", dist(progressive=1.0)) for i in range(4)]
    assert dominant_stance(videos) is None


def test_overlay_flags_echo_chamber_and_diverse():
    overlay = overlay_stances(progressive_heavy_feed(), ["p0", "c0", "m0", "n0", "unknown"])

    assert overlay.dominant_stance == "progressive"
    assert overlay.total_analyzed == 7
    assert overlay.total_political == 6
    assert set(overlay.stances) == {"p0", "c0", "m0", "n0"}

    assert overlay.stances["p0"].is_echo_chamber and not overlay.stances["p0"].is_diverse
    assert overlay.stances["c0"].is_diverse and not overlay.stances["c0"].is_echo_chamber
    for neutral in ("m0", "n0"):
        assert not overlay.stances[neutral].is_echo_chamber
        assert not overlay.stances[neutral].is_diverse


def test_overlay_without_dominant_stance_flags_nothing():
    overlay = overlay_stances([make_video("p", dist(progressive=1.0))], ["p"])
    assert overlay.dominant_stance is None
    assert overlay.stances["p"].stance == "progressive"
    assert not overlay.stances["p"].is_echo_chamber


def test_video_seen_in_several_phases_counts_once():
    videos = []
    for i in range(3):
        videos.append(make_video(f"p{i}", dist(progressive=1.0), "home_feed"))
        videos.append(make_video(f"p{i}", dist(progressive=1.0), "watch_history"))
    videos += [make_video(f"c{i}", dist(conservative=1.0)) for i in range(2)]

    overlay = overlay_stances(videos, ["p0", "c0"])

    assert overlay.total_analyzed == 5
    assert overlay.total_political == 5
    # 3 of 5 distinct political videos is still a majority
    assert overlay.dominant_stance == "progressive"
    assert overlay.stances["c0"].is_diverse


def test_repeated_observations_do_not_reach_the_dominance_gate():
    videos = []
    for i in range(3):
        videos.append(make_video(f"p{i}", dist(progressive=1.0), "home_feed"))
        videos.append(make_video(f"p{i}", dist(progressive=1.0), "search"))
    assert dominant_stance(videos) is None
