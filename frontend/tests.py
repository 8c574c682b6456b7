from django.test import TestCase
from django.urls import reverse

from store.models import Category


class PageRenderingTests(TestCase):
    def test_pages_render(self):
        for name in ['index', 'login', 'cart', 'checkout', 'account', 'admin-panel']:
            response = self.client.get(reverse(f'frontend:{name}'))
            self.assertEqual(response.status_code, 200, name)
            self.assertContains(response, 'js/api.js')

    def test_catalog_lists_categories_for_filter(self):
        Category.objects.create(name='Books')
        Category.objects.create(name='Audio')
        response = self.client.get(reverse('frontend:index'))
        self.assertContains(response, '<option value="Books">Books</option>', html=True)
        self.assertContains(response, 'js/main.js')

    def test_admin_panel_loads_admin_script(self):
        response = self.client.get('/admin-panel/')
        self.assertContains(response, 'js/admin.js')
        self.assertEqual(response.context['page_name'], 'admin')
