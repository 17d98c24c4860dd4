import pytest

from tickets.common_issues import CommonIssueDatabase, DEFAULT_ISSUES


def test_defaults_seeded(common_issues):
    issues = common_issues.list_issues()
    assert len(issues) == len(DEFAULT_ISSUES) == 10
    assert issues[0]['issue'] == 'Wi-Fi Not Connecting'
    assert all(issue['fix_steps'] for issue in issues)


def test_seeding_happens_once(tickets_db_path, common_issues):
    reopened = CommonIssueDatabase(tickets_db_path)
    assert len(reopened.list_issues()) == len(DEFAULT_ISSUES)


def test_category_filter(common_issues):
    hardware = common_issues.list_issues('hardware')
    assert hardware
    assert {issue['category'] for issue in hardware} == {'hardware'}
    assert len(hardware) + len(common_issues.list_issues('software')) == len(DEFAULT_ISSUES)


def test_invalid_category(common_issues):
    with pytest.raises(ValueError):
        common_issues.list_issues('printers')


def test_add_issue(common_issues):
    result = common_issues.add_issue('Printer Offline', 'hardware', ['Check the cable', '  ', 'Restart the printer'])

    assert result['success']
    assert result['issue']['fix_steps'] == ['Check the cable', 'Restart the printer']
    assert common_issues.list_issues('hardware')[-1]['issue'] == 'Printer Offline'


@pytest.mark.parametrize('issue, category, steps', [
    ('', 'hardware', ['Restart']),
    ('Printer Offline', 'printers', ['Restart']),
    ('Printer Offline', 'hardware', []),
    ('Printer Offline', 'hardware', ['   ']),
    ('Printer Offline', 'hardware', 'Restart'),
])
def test_add_issue_validation(common_issues, issue, category, steps):
    result = common_issues.add_issue(issue, category, steps)
    assert result['success'] is False
    assert result['error'] == 'validation'


def test_empty_catalog_without_seed(tmp_path):
    catalog = CommonIssueDatabase(str(tmp_path / 'empty.db'), seed_defaults=False)
    assert catalog.list_issues() == []
