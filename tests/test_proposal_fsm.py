from proposal.storage_gateway import HAS_SAID_YES_KEY, MUSIC_PLAYING_KEY, NO_COUNT_KEY, InMemoryStore


def test_refusal_index_follows_k_mod_6(harness_factory):
    h = harness_factory()
    for k in range(1, 15):
        assert h.widget.refuse() == k % 6
        assert h.store.get(NO_COUNT_KEY) == str(k % 6)


def test_refusal_button_stays_in_viewport(harness_factory):
    h = harness_factory()
    for _ in range(30):
        h.widget.refuse()
        pos = h.widget.no_position
        assert 0 <= pos.x <= 1000 - 200
        assert 0 <= pos.y <= 800 - 100


def test_refusal_button_pinned_on_last_message(harness_factory):
    h = harness_factory()
    for _ in range(4):
        h.widget.refuse()
    before = h.widget.no_position

    assert h.widget.refuse() == 5
    assert h.widget.no_position == before

    view = h.widget.view()
    assert view.yes_scale == 50
    assert view.yes_overlay is True
    assert view.no_message == "Last chance 😭"


def test_tiny_viewport_clamps_position(harness_factory):
    from proposal.state_models import Viewport

    h = harness_factory()
    h.widget.refuse(Viewport(width=150, height=50))
    assert (h.widget.no_position.x, h.widget.no_position.y) == (0, 0)


def test_scale_is_derived_from_progress(harness_factory):
    h = harness_factory()
    scales = [h.widget.view().yes_scale]
    for _ in range(5):
        h.widget.refuse()
        scales.append(h.widget.view().yes_scale)

    assert scales == [1, 3, 5, 7, 9, 50]


def test_progress_restored_after_reload(harness_factory):
    store = InMemoryStore()
    first = harness_factory(store=store)
    first.widget.refuse()
    first.widget.refuse()

    reloaded = harness_factory(store=store)
    view = reloaded.widget.view()
    assert view.kind == "prompt"
    assert view.no_message == "Pookie please 🥺"
    assert view.yes_scale == 5


def test_accept_switches_to_success_and_persists(harness_factory):
    h = harness_factory("name=alice")
    h.widget.refuse()
    assert h.widget.accept() is True

    assert h.store.get(HAS_SAID_YES_KEY) == "true"
    assert h.store.get(NO_COUNT_KEY) is None
    assert h.widget.view().kind == "success"


def test_stored_acceptance_always_renders_success(harness_factory):
    store = InMemoryStore({HAS_SAID_YES_KEY: "true", NO_COUNT_KEY: "garbage"})
    h = harness_factory("name=bob&whatsapp=123", store=store)

    assert h.widget.view().kind == "success"
    assert "Knew you would say yes!" in h.widget.render()


def test_refuse_ignored_after_acceptance(harness_factory):
    h = harness_factory()
    h.widget.accept()

    assert h.widget.refuse() == 0
    assert h.store.get(NO_COUNT_KEY) is None


def test_second_accept_does_not_change_state(harness_factory):
    h = harness_factory()
    h.widget.accept()
    snapshot = dict((k, h.store.get(k)) for k in h.store.keys())

    assert h.widget.accept() is False
    assert dict((k, h.store.get(k)) for k in h.store.keys()) == snapshot


def test_greeting_uses_name_or_default(harness_factory):
    assert "Alice, will you be my valentine?" in harness_factory("name=alice").widget.render()
    assert "My Love, will you be my valentine?" in harness_factory().widget.render()


def test_name_is_html_escaped(harness_factory):
    html = harness_factory("name=<script>x</script>").widget.render()
    assert "<script>x</script>" not in html
    assert "&lt;script&gt;x" in html


def test_render_forwards_query_to_forms(harness_factory):
    html = harness_factory("name=alice").widget.render(query="name=alice")
    assert 'action="/refuse?name=alice"' in html
    assert 'action="/accept?name=alice"' in html


def test_share_opens_whatsapp_link(harness_factory):
    h = harness_factory("whatsapp=15551234567")
    h.widget.accept()
    url = h.widget.share()

    assert h.opener.urls == [url]
    assert url.startswith("https://wa.me/15551234567?text=")
    assert "I%20just%20said%20YES" in url


def test_share_without_contact_uses_generic_target(harness_factory):
    h = harness_factory()
    assert h.widget.share().startswith("https://wa.me/?text=")


def test_toggle_music_persists_preference(harness_factory):
    h = harness_factory()
    assert h.widget.toggle_music() is False
    assert h.store.get(MUSIC_PLAYING_KEY) == "false"
    assert "🔇 Music Off" in h.widget.render()

    assert h.widget.toggle_music() is True
    assert h.store.get(MUSIC_PLAYING_KEY) == "true"


def test_wrap_around_refusal_relocates_button(harness_factory):
    h = harness_factory()
    for _ in range(5):
        h.widget.refuse()
    pinned = h.widget.no_position

    assert h.widget.refuse() == 0
    assert h.widget.no_position != pinned
    assert h.widget.view().yes_scale == 1


def test_close_stops_running_celebration(harness_factory):
    h = harness_factory()
    h.widget.accept()
    h.scheduler.advance(300)
    h.widget.close()
    h.scheduler.advance(5000)

    assert len(h.confetti.bursts) == 10
    assert h.scheduler.pending == 0


def test_views_carry_gifs_and_watermark(harness_factory):
    h = harness_factory()
    prompt = h.widget.render()
    assert 'alt="Cute love"' in prompt
    assert "Made with 💖 by Mirrshii" in prompt

    h.widget.accept()
    success = h.widget.render()
    assert 'alt="Cute celebration"' in success
    assert "https://simon-ndiritu.vercel.app" in success
