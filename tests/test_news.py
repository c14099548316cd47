from src.simulation_layer.models import HistoryType, NewsType
from src.simulation_layer.news import Headline, NewsLog


def test_publish_keeps_order_and_records_history():
    log = NewsLog()
    log.publish(Headline("quiet day"), day=1)
    log.publish(Headline("meteor!", NewsType.NEGATIVE, HistoryType.DISASTER), day=2)

    assert [i.text for i in log.items] == ["quiet day", "meteor!"]
    assert [i.id for i in log.items] == ["news-1", "news-2"]
    assert len(log.history) == 1
    assert log.history[0].type == HistoryType.DISASTER
    assert log.history[0].day == 2


def test_recent_trims_from_the_end():
    log = NewsLog()
    log.publish_all([Headline(str(n)) for n in range(5)], day=1)

    assert [i.text for i in log.recent(2)] == ["3", "4"]
    assert log.recent(0) == []
    assert log.recent_history(0) == []
    assert len(log) == 5
