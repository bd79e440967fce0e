import unittest
from dataclasses import replace

from pairchat.envelope import ScrollEvent
from pairchat.events import Scrolled, Tick
from pairchat.scroll import is_near_bottom, track
from pairchat.session import apply
from pairchat.state import Flags, Moving, Static, init_model

AT_BOTTOM = ScrollEvent(scroll_height=1000, scroll_top=850, client_height=100)
AWAY = ScrollEvent(scroll_height=1000, scroll_top=200, client_height=100)


class NearBottomTests(unittest.TestCase):
    def test_slack(self):
        self.assertTrue(is_near_bottom(AT_BOTTOM))
        self.assertFalse(is_near_bottom(AWAY))
        self.assertFalse(is_near_bottom(ScrollEvent(1000, 800, 100)))


class TrackTests(unittest.TestCase):
    def test_static_starts_moving(self):
        self.assertEqual(track(Static(), AWAY, 1000), (Moving(1000, 200), True))
        self.assertEqual(track(Static(), AT_BOTTOM, 1000), (Moving(1000, 850), False))

    def test_events_inside_window_keep_sample_but_update_arrow(self):
        moving = Moving(1000, 200)
        self.assertEqual(track(moving, AT_BOTTOM, 1020), (moving, False))
        self.assertEqual(track(moving, AWAY, 1050), (moving, True))

    def test_event_after_window_with_new_position_keeps_moving(self):
        self.assertEqual(track(Moving(1000, 200), AT_BOTTOM, 1051), (Moving(1051, 850), False))

    def test_event_after_window_with_same_position_settles(self):
        self.assertEqual(track(Moving(1000, 200), AWAY, 1100), (Static(), True))


class ScrollThroughSessionTests(unittest.TestCase):
    def _scroll(self, model, now, event):
        model, _ = apply(Tick(now), model)
        model, _ = apply(Scrolled(event), model)
        return model

    def test_burst_then_settle(self):
        model = replace(init_model(Flags()), time=0)

        model = self._scroll(model, 1000, AWAY)
        self.assertEqual(model.scroll, Moving(1000, 200))
        self.assertTrue(model.show_scroll_arrow)

        coalesced = self._scroll(model, 1030, AT_BOTTOM)
        self.assertEqual(coalesced.scroll, model.scroll)
        self.assertFalse(coalesced.show_scroll_arrow)

        model = self._scroll(coalesced, 1100, AT_BOTTOM)
        self.assertEqual(model.scroll, Moving(1100, 850))
        self.assertFalse(model.show_scroll_arrow)

        model = self._scroll(model, 1200, AT_BOTTOM)
        self.assertEqual(model.scroll, Static())
        self.assertFalse(model.show_scroll_arrow)

    def test_burst_ending_inside_window_keeps_last_position(self):
        model = replace(init_model(Flags()), time=0)
        model = self._scroll(model, 1000, AWAY)
        model = self._scroll(model, 1030, AT_BOTTOM)

        model, _ = apply(Tick(5000), model)
        self.assertFalse(model.show_scroll_arrow)
        self.assertEqual(model.scroll, Moving(1000, 200))


if __name__ == "__main__":
    unittest.main()
