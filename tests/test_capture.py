import unittest


class TestCommandCapture(unittest.TestCase):
    def test_no_output_means_no_response(self) -> None:
        from mcrelay.kernel.capture import CommandCapture

        c = CommandCapture(100)
        cid = c.next_id()
        self.assertTrue(c.begin(cid, "list"))
        self.assertTrue(c.active)
        self.assertIsNone(c.finish(cid))
        self.assertFalse(c.active)

    def test_lines_are_returned_in_arrival_order(self) -> None:
        from mcrelay.kernel.capture import CommandCapture

        c = CommandCapture(100)
        c.feed("before")
        cid = c.next_id()
        c.begin(cid, "list")
        c.feed("There are 2 players")
        c.feed("Alice, Bob")
        self.assertEqual(c.finish(cid), "There are 2 players\nAlice, Bob\n")
        c.feed("after")
        self.assertEqual(c.scratch.text(), "")

    def test_second_begin_is_rejected_while_active(self) -> None:
        from mcrelay.kernel.capture import CommandCapture

        c = CommandCapture(100)
        first = c.next_id()
        c.begin(first, "a", deadline="timer-a")
        c.feed("x")
        self.assertFalse(c.begin(c.next_id(), "b", deadline="timer-b"))
        self.assertEqual(c.command, "a")
        self.assertEqual(c.deadline, "timer-a")
        self.assertEqual(c.finish(first), "x\n")

    def test_stale_id_does_not_close_window(self) -> None:
        from mcrelay.kernel.capture import CommandCapture

        c = CommandCapture(100)
        cid = c.next_id()
        c.begin(cid, "a")
        self.assertIsNone(c.finish(cid + 100))
        self.assertTrue(c.active)

    def test_scratch_is_bounded_and_cleared_between_windows(self) -> None:
        from mcrelay.kernel.capture import CommandCapture

        c = CommandCapture(8)
        cid = c.next_id()
        c.begin(cid, "a")
        c.feed("0123456789")
        self.assertEqual(c.finish(cid), "01234567")
        cid = c.next_id()
        c.begin(cid, "b")
        c.feed("y")
        self.assertEqual(c.finish(cid), "y\n")


if __name__ == "__main__":
    unittest.main()
